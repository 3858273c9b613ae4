"""Routes for browsers and sync peers.

Human pages render HTML from Jinja2 templates. The ``/api/v1`` endpoints
speak JSON: peers list paths and documents, and upload batches of
documents as a JSON array.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Awaitable, Dict, List, TypeVar

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from ..errors import InvalidBatchError, WorkspaceNotFoundError
from ..utils.logging import get_logger
from .context import get_context

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
logger = get_logger(__name__)

T = TypeVar("T")

EXAMPLE_WORKSPACE = "+your.workspace"
BAD_BATCH_DETAIL = "Body must be a JSON array of documents"


async def _guarded(workspace: str, pending: Awaitable[T]) -> T:
    """Await a store operation, turning failures into HTTP errors for this request only."""
    try:
        return await pending
    except WorkspaceNotFoundError:
        raise HTTPException(status_code=404, detail="Workspace not found")
    except InvalidBatchError:
        raise HTTPException(status_code=400, detail=BAD_BATCH_DETAIL)
    except Exception:
        logger.exception(f"Store error in workspace {workspace}")
        raise HTTPException(status_code=500, detail="Internal server error")


async def _read_limited_body(request: Request, limit: int) -> bytes:
    """Read the request body, failing with 413 as soon as it exceeds ``limit`` bytes."""
    declared = request.headers.get("content-length")
    if declared is not None:
        try:
            too_large = int(declared) > limit
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid Content-Length header")
        if too_large:
            raise HTTPException(status_code=413, detail="Request body too large")

    # Chunked uploads carry no length header, so count while reading
    chunks: List[bytes] = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise HTTPException(status_code=413, detail="Request body too large")
        chunks.append(chunk)
    return b"".join(chunks)


# -- pages for humans -------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
async def index(request: Request) -> HTMLResponse:
    """Home page listing the hosted workspaces."""
    logger.debug("/")
    ctx = get_context(request)
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "workspaces": ctx.registry.list_workspaces(),
            "discoverable": ctx.settings.discoverable_workspaces,
            "title": ctx.settings.title,
            "notes": ctx.settings.notes,
            "example_workspace": EXAMPLE_WORKSPACE,
        },
    )


@router.get("/workspace/{workspace}", response_class=HTMLResponse)
async def workspace_detail(request: Request, workspace: str) -> HTMLResponse:
    """Latest content at each path of a workspace, with history."""
    logger.debug("workspace view")
    ctx = get_context(request)
    latest = await _guarded(workspace, ctx.query.list_latest_documents(workspace))
    sections: List[Dict[str, Any]] = []
    for doc in latest:
        history = await _guarded(workspace, ctx.query.list_history(workspace, doc.path))
        sections.append(
            {
                "doc": doc,
                "history": [json.dumps(h.to_wire(), indent=2) for h in history],
            }
        )
    return templates.TemplateResponse(
        request,
        "workspace.html",
        {"workspace": workspace, "sections": sections},
    )


# -- sync API ---------------------------------------------------------------


@router.get("/api/v1/{workspace}/paths")
async def list_paths(request: Request, workspace: str) -> List[str]:
    logger.debug("giving paths")
    ctx = get_context(request)
    return await _guarded(workspace, ctx.query.list_paths(workspace))


@router.get("/api/v1/{workspace}/documents")
async def list_documents(request: Request, workspace: str) -> List[Dict[str, Any]]:
    logger.debug("giving documents")
    ctx = get_context(request)
    docs = await _guarded(workspace, ctx.query.list_documents(workspace))
    return [doc.to_wire() for doc in docs]


@router.post("/api/v1/{workspace}/documents")
async def ingest_documents(request: Request, workspace: str) -> Dict[str, int]:
    """Ingest a JSON array of documents uploaded by a peer.

    The body is accepted whatever its declared content type. Checks run
    in this order: read-only mode (403), body size (413), body shape
    (400), then whether the workspace exists or may be created (404).
    """
    logger.debug("ingesting documents")
    ctx = get_context(request)
    if ctx.settings.readonly:
        raise HTTPException(status_code=403, detail="This pub is read-only")

    body = await _read_limited_body(request, ctx.settings.max_upload_bytes)
    try:
        documents = json.loads(body)
    except (ValueError, RecursionError):
        raise HTTPException(status_code=400, detail=BAD_BATCH_DETAIL)
    if not isinstance(documents, list):
        raise HTTPException(status_code=400, detail=BAD_BATCH_DETAIL)

    store = await ctx.registry.obtain(workspace, ctx.settings.allow_push_to_new_workspaces)
    if store is None:
        raise HTTPException(status_code=404, detail="Workspace not found")

    summary = await _guarded(workspace, ctx.ingestion.apply(workspace, documents))
    return summary.model_dump(by_alias=True)


@router.post("/api/v1/{workspace}/delete")
async def delete_workspace(request: Request, workspace: str) -> RedirectResponse:
    """Stop hosting a workspace. It comes back if a peer syncs it again."""
    logger.debug("deleting workspace")
    ctx = get_context(request)
    await ctx.registry.delete(workspace)
    return RedirectResponse("/", status_code=303)


@router.post("/demo/recreate")
async def recreate_demo(request: Request) -> RedirectResponse:
    """Restore the demo workspace after it was deleted."""
    logger.debug("creating demo workspace")
    ctx = get_context(request)
    await ctx.seeder.ensure_seeded()
    return RedirectResponse("/", status_code=303)


@router.get("/healthz")
async def health(request: Request) -> Dict[str, Any]:
    ctx = get_context(request)
    return {"status": "ok", "workspaces": len(ctx.registry)}
