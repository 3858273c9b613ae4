"""Demo workspace seeding."""

from typing import Optional

from .core.models import AuthorKeypair, DocDraft, Document
from .registry import WorkspaceRegistry
from .utils.logging import get_logger

logger = get_logger(__name__)

DEMO_WORKSPACE = "+gardening.pals"
DEMO_KEYPAIR = AuthorKeypair(
    address="@bird.btr46n7ij6eq6hwnpvfcdakxqy3e6vz4e5vmw33ur7tjey5dkx6ea",
    secret="bcrmyrih74d5mpvaco3tjrawgzebnmzyqdxvxnvg2hvnsfdj3izga",
)
DEMO_ABOUT_PATH = f"/about/~{DEMO_KEYPAIR.address}/displayName.txt"
DEMO_DISPLAY_NAME = "Bird, the example author"


class DemoWorkspaceSeeder:
    """Makes sure the demo workspace exists and holds the demo author's display name.

    Seeding writes to the same path as the same author every time, so it
    replaces the previous document instead of adding another one.
    """

    def __init__(self, registry: WorkspaceRegistry, workspace: str = DEMO_WORKSPACE) -> None:
        self.registry = registry
        self.workspace = workspace

    async def ensure_seeded(self) -> Optional[Document]:
        store = await self.registry.obtain(self.workspace, create_if_absent=True)
        if store is None:
            logger.error(f"Could not create demo workspace {self.workspace}")
            return None
        doc = await store.set(
            DEMO_KEYPAIR,
            DocDraft(path=DEMO_ABOUT_PATH, content=DEMO_DISPLAY_NAME),
        )
        logger.info(f"Seeded demo workspace {self.workspace}")
        return doc
