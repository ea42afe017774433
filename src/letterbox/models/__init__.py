"""Replica document models."""

from .document import DocToSet, Document, hash_content

__all__ = ["DocToSet", "Document", "hash_content"]
