"""Documents exchanged with the replica."""

from __future__ import annotations

import base64
import hashlib

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["DocToSet", "Document", "hash_content"]


def hash_content(content: str) -> str:
    """Return the base32 SHA-256 fingerprint of a document's content."""
    digest = hashlib.sha256(content.encode("utf-8")).digest()
    return "b" + base64.b32encode(digest).decode().rstrip("=").lower()


class DocToSet(BaseModel):
    """Fields a writer supplies; the replica fills in author, timestamp and signature."""

    path: str
    content: str
    format: str
    delete_after: int | None = Field(
        default=None,
        description="Expiry time in microseconds since the epoch",
    )


class Document(BaseModel):
    """A signed, path-addressed document as stored by a replica.

    Documents are owned by the replica; the letterbox layer only reads them
    back and never mutates them.
    """

    format: str
    path: str
    content: str
    content_hash: str
    author: str
    # Microseconds since the epoch.
    timestamp: int
    delete_after: int | None = None
    signature: str = ""

    model_config = ConfigDict(frozen=True)

    def signing_payload(self) -> bytes:
        """Return the canonical bytes covered by the author's signature."""
        fields = (
            ("author", self.author),
            ("contentHash", self.content_hash),
            ("deleteAfter", "" if self.delete_after is None else str(self.delete_after)),
            ("format", self.format),
            ("path", self.path),
            ("timestamp", str(self.timestamp)),
        )
        return "".join(f"{key}\t{value}\n" for key, value in fields).encode("utf-8")
