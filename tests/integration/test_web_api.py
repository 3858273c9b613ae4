"""Integration tests for the pub web API.

These tests build the FastAPI app around an explicit registry and drive
it with TestClient (or an httpx AsyncClient for concurrent requests).
"""

import asyncio
import json

import httpx
import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from docpub.config.settings import Settings
from docpub.errors import InvalidBatchError, WorkspaceNotFoundError
from docpub.registry import WorkspaceRegistry
from docpub.seeder import DEMO_ABOUT_PATH, DEMO_WORKSPACE
from docpub.store.memory import MemoryDocumentStore, create_memory_store
from docpub.web.app import create_app
from docpub.web.routes import _guarded


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


@pytest.fixture
def registry():
    return WorkspaceRegistry(create_memory_store)


@pytest.fixture
def client(registry):
    """Return a TestClient for a default pub (demo workspace seeded)."""
    app = create_app(_settings(), registry)
    with TestClient(app) as client:
        yield client


def _push(client, workspace, docs):
    return client.post(f"/api/v1/{workspace}/documents", json=docs)


class TestPages:
    """Human-facing HTML pages."""

    def test_homepage_lists_workspaces(self, client) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert DEMO_WORKSPACE in response.text

    def test_homepage_unlisted(self, registry) -> None:
        app = create_app(_settings(discoverable_workspaces=False, title="My <Pub>"), registry)
        with TestClient(app) as client:
            response = client.get("/")
        assert response.status_code == 200
        assert "1</b> unlisted workspaces" in response.text
        assert "/workspace/%2B" not in response.text
        assert "My &lt;Pub&gt;" in response.text

    def test_homepage_offers_demo_when_empty(self, registry) -> None:
        app = create_app(_settings(demo_workspace_enabled=False), registry)
        with TestClient(app) as client:
            response = client.get("/")
        assert "Create a demo workspace" in response.text

    def test_workspace_detail(self, client) -> None:
        response = client.get(f"/workspace/{DEMO_WORKSPACE}")
        assert response.status_code == 200
        assert "Bird, the example author" in response.text
        assert DEMO_ABOUT_PATH in response.text

    def test_workspace_detail_escapes_content(self, client, make_doc) -> None:
        _push(client, "+test.abc", [make_doc("+test.abc", "/x.html", "<script>alert(1)</script>").to_wire()])
        response = client.get("/workspace/+test.abc")
        assert "<script>alert(1)</script>" not in response.text
        assert "&lt;script&gt;" in response.text

    def test_workspace_detail_unknown(self, client, registry) -> None:
        assert client.get("/workspace/+nope.ws").status_code == 404
        assert "+nope.ws" not in registry

    def test_health(self, client) -> None:
        assert client.get("/healthz").json() == {"status": "ok", "workspaces": 1}


class TestReadAPI:
    """GET endpoints for sync peers."""

    def test_paths_unknown_workspace(self, client, registry) -> None:
        response = client.get("/api/v1/+nope.ws/paths")
        assert response.status_code == 404
        assert "+nope.ws" not in registry

    def test_documents_unknown_workspace(self, client, registry) -> None:
        assert client.get("/api/v1/+nope.ws/documents").status_code == 404
        assert "+nope.ws" not in registry

    def test_paths_and_documents(self, client, make_doc, suzy, fred) -> None:
        docs = [
            make_doc("+test.abc", "/b.txt", "b", keypair=suzy, timestamp=1_700_000_000_000_010).to_wire(),
            make_doc("+test.abc", "/a.txt", "a-old", keypair=suzy, timestamp=1_700_000_000_000_000).to_wire(),
            make_doc("+test.abc", "/a.txt", "a-new", keypair=fred, timestamp=1_700_000_000_000_005).to_wire(),
        ]
        assert _push(client, "+test.abc", docs).status_code == 200

        assert client.get("/api/v1/+test.abc/paths").json() == ["/a.txt", "/b.txt"]
        documents = client.get("/api/v1/+test.abc/documents").json()
        assert [(d["path"], d["content"]) for d in documents] == [
            ("/a.txt", "a-new"),
            ("/a.txt", "a-old"),
            ("/b.txt", "b"),
        ]
        assert "contentHash" in documents[0]


class TestIngestAPI:
    """POST /api/v1/{workspace}/documents."""

    def test_mixed_batch(self, client, make_doc) -> None:
        docs = [make_doc("+test.abc", f"/doc{i}.txt", f"doc {i}").to_wire() for i in range(3)]
        docs.append({"format": "es.4", "content": 12})
        response = _push(client, "+test.abc", docs)
        assert response.status_code == 200
        assert response.json() == {"numTotal": 4, "numIngested": 3, "numIgnored": 1}

    def test_body_not_array(self, client, registry) -> None:
        response = client.post("/api/v1/+test.abc/documents", json={"documents": []})
        assert response.status_code == 400
        assert "+test.abc" not in registry

    def test_body_not_json(self, client, registry) -> None:
        response = client.post(
            "/api/v1/+test.abc/documents",
            content=b"{not json",
            headers={"content-type": "text/plain"},
        )
        assert response.status_code == 400
        assert "+test.abc" not in registry

    def test_any_content_type_accepted(self, client, make_doc) -> None:
        body = json.dumps([make_doc("+test.abc", "/a.txt", "a").to_wire()]).encode()
        response = client.post(
            "/api/v1/+test.abc/documents",
            content=body,
            headers={"content-type": "text/plain"},
        )
        assert response.status_code == 200
        assert response.json()["numIngested"] == 1

    def test_body_too_large(self, registry) -> None:
        app = create_app(_settings(max_upload_bytes=100), registry)
        with TestClient(app) as client:
            response = _push(client, "+test.abc", [{"content": "x" * 200}])
        assert response.status_code == 413

    def test_unencodable_document_counted_as_ignored(self, client, make_doc) -> None:
        broken = make_doc("+test.abc", "/b.txt", "b").to_wire()
        broken["signature"] = "b\ud800"
        docs = [make_doc("+test.abc", "/a.txt", "a").to_wire(), broken]
        # json.dumps escapes the surrogate, which is still valid JSON
        response = client.post("/api/v1/+test.abc/documents", content=json.dumps(docs).encode())
        assert response.status_code == 200
        assert response.json() == {"numTotal": 2, "numIngested": 1, "numIgnored": 1}
        assert client.get("/api/v1/+test.abc/paths").json() == ["/a.txt"]

    def test_deeply_nested_body(self, client, registry) -> None:
        body = b"[" * 100_000 + b"]" * 100_000
        response = client.post("/api/v1/+test.abc/documents", content=body)
        assert response.status_code == 400
        assert "+test.abc" not in registry

    def test_chunked_body_too_large(self, registry) -> None:
        def chunks():
            yield b"["
            for _ in range(10):
                yield b'"' + b"x" * 50 + b'",'
            yield b"0]"

        app = create_app(_settings(max_upload_bytes=100), registry)
        with TestClient(app) as client:
            response = client.post("/api/v1/+test.abc/documents", content=chunks())
            assert response.status_code == 413
            assert "+test.abc" not in registry

    def test_chunked_body_within_limit(self, client, make_doc) -> None:
        body = json.dumps([make_doc("+test.abc", "/a.txt", "a").to_wire()]).encode()
        response = client.post("/api/v1/+test.abc/documents", content=iter([body[:10], body[10:]]))
        assert response.status_code == 200
        assert response.json()["numIngested"] == 1

    def test_peer_local_fields_accepted(self, client, make_doc) -> None:
        wire = make_doc("+test.abc", "/a.txt", "a").to_wire()
        wire["_localIndex"] = 3
        response = _push(client, "+test.abc", [wire])
        assert response.json() == {"numTotal": 1, "numIngested": 1, "numIgnored": 0}

    def test_read_only(self, registry, make_doc) -> None:
        app = create_app(_settings(readonly=True), registry)
        with TestClient(app) as client:
            before = client.get(f"/api/v1/{DEMO_WORKSPACE}/documents").json()
            response = _push(
                client,
                DEMO_WORKSPACE,
                [make_doc(DEMO_WORKSPACE, "/new.txt", "new").to_wire()],
            )
            assert response.status_code == 403
            after = client.get(f"/api/v1/{DEMO_WORKSPACE}/documents").json()
        assert after == before

    def test_read_only_does_not_create(self, registry, make_doc) -> None:
        app = create_app(_settings(readonly=True), registry)
        with TestClient(app) as client:
            response = _push(client, "+test.abc", [make_doc("+test.abc", "/a.txt", "a").to_wire()])
            assert response.status_code == 403
            assert "+test.abc" not in registry
            assert client.get("/api/v1/+test.abc/paths").status_code == 404

    def test_push_to_new_workspace_disallowed(self, registry, make_doc) -> None:
        app = create_app(_settings(allow_push_to_new_workspaces=False), registry)
        with TestClient(app) as client:
            response = _push(client, "+test.abc", [make_doc("+test.abc", "/a.txt", "a").to_wire()])
            assert response.status_code == 404
            assert "+test.abc" not in registry
            # Existing workspaces still accept uploads
            response = _push(client, DEMO_WORKSPACE, [make_doc(DEMO_WORKSPACE, "/a.txt", "a").to_wire()])
            assert response.status_code == 200

    def test_invalid_workspace_address(self, client, registry) -> None:
        response = client.post("/api/v1/not-a-workspace/documents", json=[])
        assert response.status_code == 404
        assert "not-a-workspace" not in registry

    def test_store_failure_isolated(self, make_doc) -> None:
        class FailingStore(MemoryDocumentStore):
            async def _upsert(self, doc) -> None:
                raise RuntimeError("backend exploded")

        async def factory(workspace: str):
            if workspace == "+broken.ws":
                return FailingStore(workspace)
            return MemoryDocumentStore(workspace)

        app = create_app(_settings(), WorkspaceRegistry(factory))
        with TestClient(app) as client:
            response = _push(client, "+broken.ws", [make_doc("+broken.ws", "/a.txt", "a").to_wire()])
            assert response.status_code == 500
            assert "exploded" not in response.text
            response = _push(client, "+healthy.ws", [make_doc("+healthy.ws", "/a.txt", "a").to_wire()])
            assert response.status_code == 200
            assert client.get("/api/v1/+healthy.ws/paths").json() == ["/a.txt"]


class TestDeleteAndDemo:
    """Workspace deletion and demo recreation."""

    def test_delete_then_recreate_by_push(self, client, make_doc) -> None:
        _push(client, "+test.abc", [make_doc("+test.abc", "/old.txt", "old").to_wire()])
        response = client.post("/api/v1/+test.abc/delete", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/"
        assert client.get("/api/v1/+test.abc/paths").status_code == 404

        _push(client, "+test.abc", [make_doc("+test.abc", "/new.txt", "new").to_wire()])
        assert client.get("/api/v1/+test.abc/paths").json() == ["/new.txt"]

    def test_delete_unknown_is_noop(self, client) -> None:
        response = client.post("/api/v1/+nope.ws/delete")
        assert response.status_code == 200  # followed redirect to the home page

    def test_demo_recreate_is_idempotent(self, client, registry) -> None:
        client.post(f"/api/v1/{DEMO_WORKSPACE}/delete")
        assert DEMO_WORKSPACE not in registry
        for _ in range(3):
            response = client.post("/demo/recreate", follow_redirects=False)
            assert response.status_code == 303
        docs = client.get(f"/api/v1/{DEMO_WORKSPACE}/documents").json()
        assert [d["path"] for d in docs] == [DEMO_ABOUT_PATH]


class TestConcurrentPush:
    """Simultaneous uploads racing to create the same workspace."""

    @pytest.mark.asyncio
    async def test_two_pushes_create_one_store(self, make_doc) -> None:
        created = []

        async def slow_factory(workspace: str) -> MemoryDocumentStore:
            await asyncio.sleep(0.01)
            created.append(workspace)
            return MemoryDocumentStore(workspace)

        registry = WorkspaceRegistry(slow_factory)
        app = create_app(_settings(demo_workspace_enabled=False), registry)
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://pub") as ac:
            first, second = await asyncio.gather(
                ac.post("/api/v1/+new.ws/documents", json=[make_doc("+new.ws", "/one.txt", "1").to_wire()]),
                ac.post("/api/v1/+new.ws/documents", json=[make_doc("+new.ws", "/two.txt", "2").to_wire()]),
            )
            assert first.status_code == 200
            assert second.status_code == 200
            paths = (await ac.get("/api/v1/+new.ws/paths")).json()

        assert paths == ["/one.txt", "/two.txt"]
        assert created == ["+new.ws"]


class TestSqliteBackend:
    """The pub running on SQLite files."""

    def test_workspaces_survive_restart(self, tmp_path, make_doc) -> None:
        settings = _settings(storage_type="sqlite", data_folder=tmp_path, demo_workspace_enabled=False)

        with TestClient(create_app(settings)) as client:
            response = _push(client, "+test.abc", [make_doc("+test.abc", "/a.txt", "kept").to_wire()])
            assert response.status_code == 200
        assert (tmp_path / "test.abc.sqlite").exists()

        with TestClient(create_app(settings)) as client:
            assert "+test.abc" in client.get("/").text
            assert client.get("/api/v1/+test.abc/paths").json() == ["/a.txt"]

    def test_sqlite_requires_data_folder(self) -> None:
        with pytest.raises(ValueError):
            _settings(storage_type="sqlite")


class TestErrorMapping:
    """Core errors surfaced through a route become HTTP errors."""

    @pytest.mark.asyncio
    async def test_invalid_batch_is_bad_request(self) -> None:
        async def apply():
            raise InvalidBatchError("not a list")

        with pytest.raises(HTTPException) as excinfo:
            await _guarded("+test.abc", apply())
        assert excinfo.value.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_workspace_is_not_found(self) -> None:
        async def apply():
            raise WorkspaceNotFoundError("+test.abc")

        with pytest.raises(HTTPException) as excinfo:
            await _guarded("+test.abc", apply())
        assert excinfo.value.status_code == 404
