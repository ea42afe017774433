"""Forum semantics on top of a path-addressed document replica.

The layer keeps no state of its own. Threads, replies, read markers and drafts
all live in the replica under templated paths (see :mod:`letterbox.core.paths`),
and every operation here is a handful of ``set``/``get``/``query`` calls plus
some sorting.
"""

from __future__ import annotations

import logging

from letterbox.core.errors import (
    DraftIdExhaustedError,
    NoIdentityError,
    WriteFailure,
    is_err,
)
from letterbox.core.identity import AuthorKeypair
from letterbox.core.paths import LetterboxPaths, PathTemplate, PostKind
from letterbox.core.settings import Settings, settings as default_settings
from letterbox.models.document import DocToSet, Document
from letterbox.replica.base import Replica
from letterbox.schemas.thread import DraftThreadParts, Post, Thread
from letterbox.utils.time import Clock, microseconds_to_datetime, now_microseconds

__all__ = ["LetterboxLayer"]

logger = logging.getLogger(__name__)

_TITLE_MARKER = "# "


class LetterboxLayer:
    """Stateless facade translating forum operations into replica calls.

    Write operations return :class:`NoIdentityError` when no identity is set and
    :class:`WriteFailure` when the replica rejects a write. Read operations that
    depend on who is reading return an empty result without an identity.
    """

    def __init__(
        self,
        replica: Replica,
        identity: AuthorKeypair | None = None,
        *,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the layer.

        Args:
            replica: Document store all operations are issued against.
            identity: Local signing identity, or None for a read-only layer.
            settings: Optional settings override.
            clock: Microsecond clock used for new post and draft ids.
        """
        self.replica = replica
        self.identity = identity
        self.settings = settings or default_settings
        self.paths = LetterboxPaths(self.settings)
        self._clock = clock or now_microseconds

    # Path codec helpers

    @staticmethod
    def _extract(template: PathTemplate, path: str) -> dict[str, str]:
        extracted = template.extract(path)
        if extracted is None:
            raise ValueError(f"Path {path!r} does not match {template.template!r}")
        return extracted

    def _thread_key(self, doc: Document) -> tuple[int, str, int]:
        """Return (root timestamp, op key, post timestamp) recovered from a post's path."""
        if self.paths.classify(doc.path) is PostKind.ROOT:
            root = self._extract(self.paths.thread_root, doc.path)
            timestamp = int(root["rootTimestamp"])
            return timestamp, root["opPubKey"], timestamp

        reply = self._extract(self.paths.thread_reply, doc.path)
        return int(reply["rootTimestamp"]), reply["opPubKey"], int(reply["replyTimestamp"])

    def get_thread_root_timestamp(self, root_doc: Document) -> int:
        """Return the creation timestamp embedded in a thread root's path."""
        return int(self._extract(self.paths.thread_root, root_doc.path)["rootTimestamp"])

    def get_reply_timestamp(self, reply_doc: Document) -> int:
        """Return the creation timestamp embedded in a reply's path."""
        return int(self._extract(self.paths.thread_reply, reply_doc.path)["replyTimestamp"])

    def get_post_timestamp(self, post_doc: Document) -> int:
        """Return the path timestamp of either a thread root or a reply."""
        if self.paths.classify(post_doc.path) is PostKind.ROOT:
            return self.get_thread_root_timestamp(post_doc)
        return self.get_reply_timestamp(post_doc)

    def _is_thread_root(self, doc: Document) -> bool:
        extracted = self.paths.thread_root.extract(doc.path)
        return extracted is not None and extracted["rootTimestamp"].isdigit()

    def _doc_to_thread_root(self, root_doc: Document) -> Post:
        return Post(
            doc=root_doc,
            first_posted=microseconds_to_datetime(self.get_thread_root_timestamp(root_doc)),
        )

    def _doc_to_post(self, reply_doc: Document) -> Post | None:
        extracted = self.paths.thread_reply.extract(reply_doc.path)
        if extracted is None or not extracted["replyTimestamp"].isdigit():
            logger.debug("Skipping non-reply document %s", reply_doc.path)
            return None
        return Post(
            doc=reply_doc,
            first_posted=microseconds_to_datetime(int(extracted["replyTimestamp"])),
        )

    @staticmethod
    def _render(template: PathTemplate, **values: object) -> str | None:
        """Render a path, or return None when the keys cannot form one."""
        try:
            return template.render(**values)
        except ValueError as err:
            logger.debug("Couldn't render %s: %s", template.template, err)
            return None

    async def _write(
        self,
        identity: AuthorKeypair,
        path: str | None,
        content: str,
        action: str,
        delete_after: int | None = None,
    ) -> Document | WriteFailure:
        if path is None:
            logger.error("%s failed: the given keys do not form a valid path", action)
            return WriteFailure(f"{action} failed: the given keys do not form a valid path")

        result = await self.replica.set(
            identity,
            DocToSet(
                path=path,
                content=content,
                format=self.settings.doc_format,
                delete_after=delete_after,
            ),
        )
        if is_err(result):
            logger.error("%s unexpectedly failed at %s: %s", action, path, result)
        return result

    # Threads and posts

    def get_thread_title(self, thread: Thread) -> str | None:
        """Return the root post's Markdown H1 title, if it has one."""
        first_line = thread.root.doc.content.split("\n")[0]
        if not first_line.startswith(_TITLE_MARKER):
            return None
        return first_line[len(_TITLE_MARKER):]

    def last_thread_item(self, thread: Thread) -> Post:
        """Return the most recent reply, or the root if there are none."""
        if not thread.replies:
            return thread.root
        return thread.replies[-1]

    async def get_thread_roots(self) -> list[Post]:
        """Return every thread root without replies, newest root first."""
        root_docs = await self.replica.query_docs(path_starts_with=self.paths.thread_root_prefix)
        roots = [self._doc_to_thread_root(doc) for doc in root_docs if self._is_thread_root(doc)]
        return sorted(roots, key=lambda post: post.first_posted, reverse=True)

    async def get_threads(self) -> list[Thread]:
        """Return every thread, most recently active first.

        Ties are broken by newer root first, then by the opening author's key.
        Threads whose root disappears between the scan and the fetch are dropped.
        """
        root_docs = await self.replica.query_docs(path_starts_with=self.paths.thread_root_prefix)

        threads: list[Thread] = []
        for root_doc in root_docs:
            extracted = self.paths.thread_root.extract(root_doc.path)
            if extracted is None or not extracted["rootTimestamp"].isdigit():
                logger.debug("Skipping malformed thread root path %s", root_doc.path)
                continue
            thread = await self.get_thread(int(extracted["rootTimestamp"]), extracted["opPubKey"])
            if thread is None:
                logger.warning("Thread root %s vanished while listing threads", root_doc.path)
                continue
            threads.append(thread)

        def activity_key(thread: Thread) -> tuple[int, int, str]:
            last = self.get_post_timestamp(self.last_thread_item(thread).doc)
            root_timestamp, op_pubkey, _ = self._thread_key(thread.root.doc)
            return -last, -root_timestamp, op_pubkey

        return sorted(threads, key=activity_key)

    list_threads = get_threads

    async def get_thread(self, root_timestamp: int, op_pubkey: str) -> Thread | None:
        """Return the thread identified by (root timestamp, op key), or None if absent."""
        root_path = self._render(
            self.paths.thread_root,
            rootTimestamp=root_timestamp,
            opPubKey=op_pubkey,
        )
        if root_path is None:
            return None

        root_doc = await self.replica.get_latest_doc_at_path(root_path)
        if root_doc is None:
            return None

        reply_docs = await self.replica.query_docs(
            path_starts_with=self.paths.reply_prefix(root_timestamp, op_pubkey)
        )
        replies = [post for post in map(self._doc_to_post, reply_docs) if post is not None]
        replies.sort(key=lambda post: (post.first_posted, post.doc.author))

        return Thread(root=self._doc_to_thread_root(root_doc), replies=replies)

    async def create_thread(
        self,
        content: str,
        delete_after: int | None = None,
    ) -> Thread | NoIdentityError | WriteFailure:
        """Write a new thread root and mark it read for its author.

        Args:
            content: Markdown body of the opening post.
            delete_after: Optional expiry, in microseconds, forwarded to the replica.

        Returns:
            The new thread with no replies, or a failure value.
        """
        identity = self.identity
        if identity is None:
            return NoIdentityError("Couldn't create a thread without a known user.")

        root_timestamp = self._clock()
        path = self._render(
            self.paths.thread_root,
            rootTimestamp=root_timestamp,
            opPubKey=identity.address,
        )
        result = await self._write(identity, path, content, "Creating a thread root", delete_after)
        if is_err(result):
            return result

        await self.mark_read_up_to(root_timestamp, identity.address, root_timestamp)

        return Thread(root=self._doc_to_thread_root(result), replies=[])

    async def create_reply(
        self,
        root_timestamp: int,
        op_pubkey: str,
        content: str,
        delete_after: int | None = None,
    ) -> Post | NoIdentityError | WriteFailure:
        """Write a reply under a thread and mark the thread read up to it for the replier."""
        identity = self.identity
        if identity is None:
            return NoIdentityError("Can't create a reply without a known user.")

        reply_timestamp = self._clock()
        path = self._render(
            self.paths.thread_reply,
            rootTimestamp=root_timestamp,
            opPubKey=op_pubkey,
            replyTimestamp=reply_timestamp,
            replierPubKey=identity.address,
        )
        result = await self._write(identity, path, content, "Creating a reply", delete_after)
        if is_err(result):
            return result

        await self.mark_read_up_to(root_timestamp, op_pubkey, reply_timestamp)

        return Post(doc=result, first_posted=microseconds_to_datetime(reply_timestamp))

    async def edit_post(
        self,
        post: Post,
        content: str,
    ) -> Document | NoIdentityError | WriteFailure:
        """Overwrite a post's content in place, keeping its path, identity and expiry."""
        if self.identity is None:
            return NoIdentityError("Couldn't edit a post without a known user.")

        return await self._write(
            self.identity,
            post.doc.path,
            content,
            "Editing a post",
            post.doc.delete_after,
        )

    # Read state

    def _read_marker_path(self, root_timestamp: int, op_pubkey: str, reader: str) -> str | None:
        return self._render(
            self.paths.read_marker,
            rootTimestamp=root_timestamp,
            opPubKey=op_pubkey,
            readerPubKey=reader,
        )

    async def _read_up_to(self, reader: str, root_timestamp: int, op_pubkey: str) -> int | None:
        """Return a reader's watermark for a thread, or None if never read."""
        path = self._read_marker_path(root_timestamp, op_pubkey, reader)
        if path is None:
            return None

        marker = await self.replica.get_latest_doc_at_path(path)
        if marker is None:
            return None
        try:
            return int(marker.content)
        except ValueError:
            logger.warning("Ignoring unreadable read marker at %s: %r", path, marker.content)
            return None

    async def mark_read_up_to(
        self,
        root_timestamp: int,
        op_pubkey: str,
        read_up_to: int,
    ) -> Document | NoIdentityError | WriteFailure:
        """Record that the local reader has read a thread up to ``read_up_to``.

        The marker is overwritten unconditionally unless ``monotonic_read_markers``
        is enabled, in which case an older watermark is left as it is.
        """
        if self.identity is None:
            return NoIdentityError(
                "Can't mark where a thread has been read up to without an identity."
            )

        path = self._read_marker_path(root_timestamp, op_pubkey, self.identity.address)

        if path is not None and self.settings.monotonic_read_markers:
            current = await self.replica.get_latest_doc_at_path(path)
            if (
                current is not None
                and current.content.isdigit()
                and int(current.content) >= read_up_to
            ):
                logger.debug("Keeping newer read marker at %s", path)
                return current

        return await self._write(self.identity, path, str(read_up_to), "Marking a thread read")

    async def is_unread(self, post: Post) -> bool:
        """Return True if the post is newer than the local reader's watermark.

        A thread with no marker counts as entirely unread. Without an identity
        nothing is unread.
        """
        if self.identity is None:
            return False

        root_timestamp, op_pubkey, post_timestamp = self._thread_key(post.doc)
        watermark = await self._read_up_to(self.identity.address, root_timestamp, op_pubkey)
        if watermark is None:
            return True
        return post_timestamp > watermark

    async def thread_has_unread_posts(self, thread: Thread) -> bool:
        """Return True if any post in the thread is unread by the local reader."""
        if self.identity is None:
            return False

        root_timestamp, op_pubkey, _ = self._thread_key(thread.root.doc)
        watermark = await self._read_up_to(self.identity.address, root_timestamp, op_pubkey)
        if watermark is None:
            return True

        return any(
            self.get_post_timestamp(post.doc) > watermark
            for post in [thread.root, *thread.replies]
        )

    # Reply drafts

    def _reply_draft_path(self, author: str, root_timestamp: int, op_pubkey: str) -> str | None:
        return self._render(
            self.paths.reply_draft,
            rootTimestamp=root_timestamp,
            opPubKey=op_pubkey,
            authorPubKey=author,
        )

    async def get_reply_draft(self, root_timestamp: int, op_pubkey: str) -> str | None:
        """Return the local author's reply draft for a thread, or None if never set."""
        if self.identity is None:
            return None

        path = self._reply_draft_path(self.identity.address, root_timestamp, op_pubkey)
        if path is None:
            return None

        doc = await self.replica.get_latest_doc_at_path(path)
        return doc.content if doc is not None else None

    async def set_reply_draft(
        self,
        root_timestamp: int,
        op_pubkey: str,
        content: str,
    ) -> Document | NoIdentityError | WriteFailure:
        """Save the local author's reply draft for a thread."""
        if self.identity is None:
            return NoIdentityError("Couldn't set a reply draft without a known user.")

        return await self._write(
            self.identity,
            self._reply_draft_path(self.identity.address, root_timestamp, op_pubkey),
            content,
            "Setting a reply draft",
        )

    async def clear_reply_draft(
        self,
        root_timestamp: int,
        op_pubkey: str,
    ) -> Document | NoIdentityError | WriteFailure:
        """Empty the local author's reply draft for a thread."""
        if self.identity is None:
            return NoIdentityError("Couldn't clear a reply draft without a known user.")

        return await self.set_reply_draft(root_timestamp, op_pubkey, "")

    # Thread-root drafts

    def _thread_draft_path(self, author: str, draft_id: str | int) -> str | None:
        return self._render(
            self.paths.thread_draft,
            authorPubKey=author,
            draftTimestamp=draft_id,
        )

    async def get_thread_root_draft_ids(self) -> list[str]:
        """Return the ids of the local author's non-empty thread drafts, oldest first."""
        if self.identity is None:
            return []

        drafts = await self.replica.query_docs(
            path_starts_with=self.paths.thread_draft_prefix(self.identity.address),
            content_length_gt=0,
        )

        draft_ids = []
        for doc in drafts:
            extracted = self.paths.thread_draft.extract(doc.path)
            if extracted is None:
                logger.debug("Skipping non-draft document %s", doc.path)
                continue
            draft_ids.append(extracted["draftTimestamp"])

        return sorted(draft_ids, key=lambda draft_id: (len(draft_id), draft_id))

    async def get_thread_root_draft_content(self, draft_id: str) -> str | None:
        """Return a thread draft's content, or None if it was never written."""
        if self.identity is None:
            return None

        path = self._thread_draft_path(self.identity.address, draft_id)
        if path is None:
            return None

        doc = await self.replica.get_latest_doc_at_path(path)
        return doc.content if doc is not None else None

    async def set_thread_root_draft(
        self,
        content: str,
        draft_id: str | None = None,
    ) -> str | NoIdentityError | WriteFailure | DraftIdExhaustedError:
        """Save a thread draft and return its id.

        With an explicit ``draft_id`` the draft is overwritten. Otherwise the
        current time is used as a candidate id and bumped by one until a free
        slot is found, up to ``draft_id_max_attempts`` attempts. The search is a
        read followed by a write and is not safe against one identity drafting
        from two places in the same microsecond.
        """
        identity = self.identity
        if identity is None:
            return NoIdentityError("Couldn't set a thread draft without a known user.")

        if draft_id is None:
            candidate = self._clock()
            for _ in range(self.settings.draft_id_max_attempts):
                candidate_path = self._thread_draft_path(identity.address, candidate)
                if candidate_path is None:
                    return await self._write(identity, None, content, "Setting a thread draft")

                existing = await self.replica.get_latest_doc_at_path(candidate_path)
                if existing is None:
                    draft_id = str(candidate)
                    break
                candidate += 1
            else:
                logger.warning(
                    "No free thread draft id after %d attempts",
                    self.settings.draft_id_max_attempts,
                )
                return DraftIdExhaustedError(
                    f"No free thread draft id after {self.settings.draft_id_max_attempts} attempts"
                )

        result = await self._write(
            identity,
            self._thread_draft_path(identity.address, draft_id),
            content,
            "Setting a thread draft",
        )
        if is_err(result):
            return result
        return draft_id

    async def clear_thread_root_draft(
        self,
        draft_id: str,
    ) -> Document | NoIdentityError | WriteFailure:
        """Empty a thread draft so it no longer appears in the draft id list."""
        if self.identity is None:
            return NoIdentityError("Couldn't clear a thread draft without a known user.")

        return await self._write(
            self.identity,
            self._thread_draft_path(self.identity.address, draft_id),
            "",
            "Clearing a thread draft",
        )

    async def get_draft_thread_parts(self, draft_id: str) -> DraftThreadParts | None:
        """Split a thread draft into its ``# `` title line and body.

        Returns None when the draft is missing, empty, or has no title yet. A
        single blank line between the title and the body is dropped.
        """
        content = await self.get_thread_root_draft_content(draft_id)
        if not content:
            return None

        first_line, *rest = content.split("\n")
        if not first_line.startswith(_TITLE_MARKER):
            return None

        if rest and rest[0] == "":
            rest = rest[1:]

        return DraftThreadParts(title=first_line[len(_TITLE_MARKER):], content="\n".join(rest))
