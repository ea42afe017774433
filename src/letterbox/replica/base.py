"""The document store contract consumed by the letterbox layer."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from letterbox.core.errors import WriteFailure
from letterbox.core.identity import AuthorKeypair
from letterbox.models.document import DocToSet, Document

__all__ = ["Replica"]


@runtime_checkable
class Replica(Protocol):
    """Path-addressed, multi-writer document store.

    Conflict resolution, sync and validation belong to the implementation;
    the letterbox layer only uses these three calls.
    """

    async def set(self, keypair: AuthorKeypair, doc: DocToSet) -> Document | WriteFailure:
        """Sign and store a document, returning it or the reason it was rejected."""
        ...

    async def get_latest_doc_at_path(self, path: str) -> Document | None:
        """Return the newest live document at ``path`` across all authors."""
        ...

    async def query_docs(
        self,
        *,
        path_starts_with: str = "",
        content_length_gt: int | None = None,
    ) -> list[Document]:
        """Return the newest live document at every path under a prefix.

        Ordering is not guaranteed.
        """
        ...
