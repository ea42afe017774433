"""Replica contract and the in-memory implementation."""

from .base import Replica
from .memory import MemoryReplica, verify_document

__all__ = ["MemoryReplica", "Replica", "verify_document"]
