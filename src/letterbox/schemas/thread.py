"""Forum-level values assembled from replica documents."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from letterbox.models.document import Document


class Post(BaseModel):
    """A thread root or reply.

    ``first_posted`` comes from the timestamp embedded in the document path,
    so it stays fixed when the post is edited.
    """

    doc: Document
    first_posted: datetime

    model_config = ConfigDict(frozen=True)


class Thread(BaseModel):
    """A root post and its replies, oldest reply first."""

    root: Post
    replies: list[Post] = []


class DraftThreadParts(BaseModel):
    """Title and body of a thread-root draft."""

    title: str
    content: str
