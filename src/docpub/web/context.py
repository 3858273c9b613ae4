"""Per-application objects shared by the route handlers."""

from dataclasses import dataclass

from fastapi import Request

from ..config.settings import Settings
from ..ingestion import IngestionPipeline
from ..query import QueryAPI
from ..registry import WorkspaceRegistry
from ..seeder import DemoWorkspaceSeeder


@dataclass
class PubContext:
    settings: Settings
    registry: WorkspaceRegistry
    ingestion: IngestionPipeline
    query: QueryAPI
    seeder: DemoWorkspaceSeeder

    @classmethod
    def build(cls, settings: Settings, registry: WorkspaceRegistry) -> "PubContext":
        return cls(
            settings=settings,
            registry=registry,
            ingestion=IngestionPipeline(registry),
            query=QueryAPI(registry),
            seeder=DemoWorkspaceSeeder(registry),
        )


def get_context(request: Request) -> PubContext:
    return request.app.state.pub
