"""
Renders the owner's governance corpus into the text
block embedded in the reasoning prompt.

Retrieval sits behind the ContextRetriever protocol. The shipped
ConcatenatingRetriever returns every document the owner has, in creation
order, with no ranking, filtering or size cap; a semantic retriever can
replace it without the pipeline noticing.

Storage failures degrade to an empty context. Callers treat "" as valid
input, not as an error.
"""

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from sqlalchemy.exc import SQLAlchemyError

from govgen.models import GovernanceDocument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContextDocument:
    doc_type: str
    title: str
    content: str

    def render(self) -> str:
        return f"[{self.doc_type.upper()}] {self.title}:\n{self.content}"


class DocumentSource(Protocol):
    async def list_documents(self, owner_id: str) -> Sequence[GovernanceDocument]:
        ...


class ContextRetriever(Protocol):
    async def fetch_relevant(self, query: str, owner_id: str) -> list[ContextDocument]:
        ...


class ConcatenatingRetriever:
    """Every document the owner has; the query is ignored."""

    def __init__(self, source: DocumentSource):
        self.source = source

    async def fetch_relevant(self, query: str, owner_id: str) -> list[ContextDocument]:
        documents = await self.source.list_documents(owner_id)
        return [
            ContextDocument(doc_type=d.doc_type, title=d.title, content=d.content)
            for d in documents
        ]


def render_context(documents: Sequence[ContextDocument]) -> str:
    return "\n\n".join(d.render() for d in documents)


class ContextAssembler:
    def __init__(self, retriever: ContextRetriever):
        self.retriever = retriever

    async def assemble(self, query: str, owner_id: str) -> str:
        try:
            documents = await self.retriever.fetch_relevant(query, owner_id)
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Document retrieval failed for %s, using empty context: %s", owner_id, exc)
            return ""
        logger.info("Assembled context from %d documents for %s", len(documents), owner_id)
        return render_context(documents)
