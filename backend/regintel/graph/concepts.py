"""Canonical concept resolution contracts used by concept capture."""

from typing import Protocol, Sequence

from regintel.schemas.schemas import CapturedConcept


class GraphWriteService(Protocol):
    """Write-capable graph handle. Opaque to the engine; passed to the concept handler."""

    async def upsert_concept(self, concept: CapturedConcept) -> str:
        ...


class CanonicalConceptHandler(Protocol):
    async def resolve_and_upsert(
        self,
        concepts: Sequence[CapturedConcept],
        graph_write: GraphWriteService,
    ) -> list[str]:
        """Resolve concepts to canonical graph nodes, creating them if needed.

        Returns the canonical node ids, in the order the concepts were given.
        """
        ...
