"""
Pydantic schemas for forum values.

These are derived from replica documents and never stored directly.
"""

from .thread import DraftThreadParts, Post, Thread

__all__ = ["DraftThreadParts", "Post", "Thread"]
