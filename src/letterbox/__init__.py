"""Letterbox: threads, replies, read state and drafts over a document replica."""

from letterbox.core.errors import (
    DraftIdExhaustedError,
    LetterboxError,
    NoIdentityError,
    WriteFailure,
    is_err,
)
from letterbox.core.identity import AuthorKeypair, generate_author_keypair
from letterbox.core.paths import LetterboxPaths, PathTemplate, PostKind
from letterbox.core.settings import Settings
from letterbox.models import DocToSet, Document
from letterbox.replica import MemoryReplica, Replica
from letterbox.schemas import DraftThreadParts, Post, Thread
from letterbox.services import LetterboxLayer

__all__ = [
    "AuthorKeypair",
    "DocToSet",
    "Document",
    "DraftIdExhaustedError",
    "DraftThreadParts",
    "LetterboxError",
    "LetterboxLayer",
    "LetterboxPaths",
    "MemoryReplica",
    "NoIdentityError",
    "PathTemplate",
    "Post",
    "PostKind",
    "Replica",
    "Settings",
    "Thread",
    "WriteFailure",
    "generate_author_keypair",
    "is_err",
]
