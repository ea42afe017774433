"""In-process replica keeping documents in a dictionary."""

from __future__ import annotations

import logging

from letterbox.core.errors import WriteFailure
from letterbox.core.identity import AuthorKeypair, keypair_is_consistent, sign, verify
from letterbox.core.settings import Settings, settings as default_settings
from letterbox.models.document import DocToSet, Document, hash_content
from letterbox.utils.time import Clock, now_microseconds

__all__ = ["MemoryReplica", "verify_document"]

logger = logging.getLogger(__name__)


def verify_document(doc: Document) -> bool:
    """Return True if the document's signature matches its author."""
    return verify(doc.author, doc.signing_payload(), doc.signature)


class MemoryReplica:
    """Replica holding one document per (path, author) in memory.

    The newest document at a path wins; writes that would not be newer than
    the current winner are bumped to one microsecond past it so an overwrite
    always takes effect. Expired documents are invisible to reads.
    """

    # no locking needed, every mutation is a single dict assignment
    _docs: dict[str, dict[str, Document]]

    def __init__(
        self,
        share: str | None = None,
        *,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize an empty replica.

        Args:
            share: Share address; defaults to the configured replica share.
            settings: Optional settings override.
            clock: Microsecond clock; defaults to wall-clock time.
        """
        self.settings = settings or default_settings
        self.share = share or self.settings.replica_share
        self._clock = clock or now_microseconds
        self._docs = {}

    def _validate(self, keypair: AuthorKeypair, doc: DocToSet, now: int) -> str | None:
        if not doc.path.startswith("/") or "//" in doc.path:
            return f"Invalid path {doc.path!r}"
        if doc.format != self.settings.doc_format:
            return f"Unsupported format {doc.format!r}"
        if doc.delete_after is not None and doc.delete_after <= now:
            return "deleteAfter must be in the future"
        if not keypair_is_consistent(keypair):
            return "Keypair secret does not match its address"
        if "~" in doc.path and f"~{keypair.address}" not in doc.path:
            return f"Author {keypair.address} may not write to {doc.path!r}"
        return None

    def _is_live(self, doc: Document, now: int) -> bool:
        return doc.delete_after is None or doc.delete_after > now

    def _latest(self, path: str, now: int) -> Document | None:
        live = [doc for doc in self._docs.get(path, {}).values() if self._is_live(doc, now)]
        if not live:
            return None
        return max(live, key=lambda doc: (doc.timestamp, doc.signature))

    async def set(self, keypair: AuthorKeypair, doc: DocToSet) -> Document | WriteFailure:
        """Sign and store ``doc`` as ``keypair``."""
        now = self._clock()
        problem = self._validate(keypair, doc, now)
        if problem is not None:
            logger.debug("Rejected write to %s: %s", doc.path, problem)
            return WriteFailure(problem, path=doc.path)

        timestamp = now
        existing = self._latest(doc.path, now)
        if existing is not None and existing.timestamp >= timestamp:
            timestamp = existing.timestamp + 1

        unsigned = Document(
            format=doc.format,
            path=doc.path,
            content=doc.content,
            content_hash=hash_content(doc.content),
            author=keypair.address,
            timestamp=timestamp,
            delete_after=doc.delete_after,
        )
        stored = unsigned.model_copy(
            update={"signature": sign(keypair, unsigned.signing_payload())}
        )
        self._docs.setdefault(doc.path, {})[keypair.address] = stored
        return stored

    async def get_latest_doc_at_path(self, path: str) -> Document | None:
        """Return the newest live document at ``path``."""
        return self._latest(path, self._clock())

    async def query_docs(
        self,
        *,
        path_starts_with: str = "",
        content_length_gt: int | None = None,
    ) -> list[Document]:
        """Return the newest live document at every path under ``path_starts_with``."""
        now = self._clock()
        results = []
        for path in self._docs:
            if not path.startswith(path_starts_with):
                continue
            doc = self._latest(path, now)
            if doc is None:
                continue
            if content_length_gt is not None and len(doc.content) <= content_length_gt:
                continue
            results.append(doc)
        return results

    def purge_expired(self) -> int:
        """Drop expired documents and return how many were removed."""
        now = self._clock()
        removed = 0
        for path in list(self._docs):
            by_author = self._docs[path]
            for author in [a for a, doc in by_author.items() if not self._is_live(doc, now)]:
                del by_author[author]
                removed += 1
            if not by_author:
                del self._docs[path]
        return removed
