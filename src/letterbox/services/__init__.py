"""Forum services built on the replica."""

from .letterbox_layer import LetterboxLayer

__all__ = ["LetterboxLayer"]
