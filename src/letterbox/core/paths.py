"""Path templates addressing every letterbox entity.

A template is an ordered list of literal and variable segments, e.g.
``/letterbox/rootthread:{rootTimestamp}~{opPubKey}/root.md``. Rendering fills
the variables in; extraction parses a path back into the same variables, so
``extract(render(vars)) == vars`` for any values free of the surrounding
delimiters.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from letterbox.core.settings import Settings, settings as default_settings

__all__ = [
    "LetterboxPaths",
    "PathTemplate",
    "PostKind",
]

_VARIABLE_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass(frozen=True)
class _Segment:
    text: str
    is_variable: bool


class PathTemplate:
    """A templated document path with positional variable extraction."""

    def __init__(self, template: str) -> None:
        self.template = template
        self.segments = self._parse(template)
        self.variables = tuple(seg.text for seg in self.segments if seg.is_variable)
        self._pattern = re.compile(self._to_regex(self.segments))

    def __repr__(self) -> str:
        return f"PathTemplate({self.template!r})"

    @staticmethod
    def _parse(template: str) -> tuple[_Segment, ...]:
        segments: list[_Segment] = []
        names: set[str] = set()
        cursor = 0
        for match in _VARIABLE_RE.finditer(template):
            if match.start() > cursor:
                segments.append(_Segment(template[cursor:match.start()], False))
            elif segments and segments[-1].is_variable:
                raise ValueError(f"Adjacent variables are ambiguous in template {template!r}")
            name = match.group(1)
            if name in names:
                raise ValueError(f"Variable {name!r} appears twice in template {template!r}")
            names.add(name)
            segments.append(_Segment(name, True))
            cursor = match.end()
        if cursor < len(template):
            segments.append(_Segment(template[cursor:], False))
        if "{" in "".join(seg.text for seg in segments if not seg.is_variable):
            raise ValueError(f"Malformed variable in template {template!r}")
        return tuple(segments)

    @staticmethod
    def _to_regex(segments: tuple[_Segment, ...]) -> str:
        parts = []
        for seg in segments:
            if seg.is_variable:
                # Variables never span a path separator.
                parts.append(f"(?P<{seg.text}>[^/]+?)")
            else:
                parts.append(re.escape(seg.text))
        return "^" + "".join(parts) + "$"

    def render(self, **values: object) -> str:
        """Fill the template's variables in.

        Raises:
            ValueError: If a variable is missing, unexpected, empty, or contains ``/``.
        """
        missing = [name for name in self.variables if name not in values]
        if missing:
            raise ValueError(f"Missing template variables {missing} for {self.template!r}")
        extra = sorted(set(values) - set(self.variables))
        if extra:
            raise ValueError(f"Unexpected template variables {extra} for {self.template!r}")

        out = []
        for seg in self.segments:
            if not seg.is_variable:
                out.append(seg.text)
                continue
            value = str(values[seg.text])
            if not value or "/" in value:
                raise ValueError(f"Invalid value {value!r} for template variable {seg.text!r}")
            out.append(value)
        return "".join(out)

    def extract(self, path: str) -> dict[str, str] | None:
        """Parse ``path`` against the template; return None if it does not conform."""
        match = self._pattern.match(path)
        if match is None:
            return None
        return match.groupdict()

    def prefix(self, **values: object) -> str:
        """Render the literal text up to the first variable not supplied in ``values``.

        Used to build ``pathStartsWith`` filters for prefix scans.
        """
        out = []
        for seg in self.segments:
            if not seg.is_variable:
                out.append(seg.text)
            elif seg.text in values:
                out.append(str(values[seg.text]))
            else:
                break
        return "".join(out)


class PostKind(str, Enum):
    """Which template a post document was written under."""

    ROOT = "root"
    REPLY = "reply"


class LetterboxPaths:
    """The letterbox templates bound to one application namespace."""

    def __init__(self, settings: Settings | None = None) -> None:
        root = (settings or default_settings).path_root
        self.root = root
        self.thread_root = PathTemplate(f"{root}/rootthread:{{rootTimestamp}}~{{opPubKey}}/root.md")
        self.thread_reply = PathTemplate(
            f"{root}/thread:{{rootTimestamp}}--{{opPubKey}}"
            f"/reply:{{replyTimestamp}}~{{replierPubKey}}.md"
        )
        self.read_marker = PathTemplate(
            f"{root}/readthread:{{rootTimestamp}}--{{opPubKey}}/~{{readerPubKey}}/timestamp.txt"
        )
        self.reply_draft = PathTemplate(
            f"{root}/drafts/thread:{{rootTimestamp}}--{{opPubKey}}/~{{authorPubKey}}.md"
        )
        self.thread_draft = PathTemplate(f"{root}/drafts/~{{authorPubKey}}/{{draftTimestamp}}.md")

    @property
    def thread_root_prefix(self) -> str:
        """Prefix shared by every thread root path."""
        return self.thread_root.prefix()

    def reply_prefix(self, root_timestamp: int, op_pubkey: str) -> str:
        """Prefix shared by every reply in one thread."""
        return self.thread_reply.prefix(rootTimestamp=root_timestamp, opPubKey=op_pubkey)

    def thread_draft_prefix(self, author_pubkey: str) -> str:
        """Prefix shared by every thread-root draft of one author."""
        return self.thread_draft.prefix(authorPubKey=author_pubkey)

    def classify(self, path: str) -> PostKind:
        """Return ROOT for thread root paths; anything else is treated as a reply."""
        if path.startswith(self.thread_root_prefix):
            return PostKind.ROOT
        return PostKind.REPLY
