"""Chat controller.

Runs the outbound pipeline for one chat surface:

    input -> content guard -> optimistic append -> transport
          -> stream updates into the pending slot -> quota refresh

and the secondary actions around it (history, bookmarks, ratings,
reports, uploads). Secondary failures become notices and leave state
untouched; only transport failures reach the transcript.
"""

import logging
from pathlib import Path

from ..backend import BackendClient, Bookmark, ContentReport, RatingValue, UploadKind, rating_key
from ..config import EVENT_LOG_CAPACITY, MODERATION_QUEUE_SIZE, Preferences, Settings, Tone
from ..conversation import ConversationStore, Message
from ..errors import BackendError, QuotaExceededError, RequestAborted, TransportError, ValidationError
from ..events import EventLog
from ..guard import ContentGuard, ModerationReport, ModerationReporter
from ..ratelimit import RateGovernor, RateLimitInfo
from ..session import SessionIdentity
from ..session.identity import RATINGS_KEY
from ..store import LocalStore, namespace_for, scoped_key
from ..transport import ChatRequest, ChatTransport, EntityReference, HistoryEntry
from .modes import ModeState, UiMode
from .notices import Notice, NoticeHandler, NoticeLevel

logger = logging.getLogger(__name__)

BOOKMARKS_KEY = "bookmarks"

GENERIC_ERROR = "Sorry, I'm having trouble connecting right now. Please try again later."


def describe_transport_error(error: TransportError) -> str:
    """Human-readable cause shown in the transcript for a failed send."""
    if error.kind == "network":
        if "timed out" in error.message.lower():
            return "Request timed out. The response is taking longer than expected. Please try again."
        return "Network error. Please check your connection and try again."
    if error.kind == "malformed":
        return "I received an invalid response. Please try again."
    if error.kind == "stream":
        return f"The response was interrupted: {error.message}"
    if error.kind == "http":
        if error.status == 429 or not error.message.startswith("HTTP error"):
            return error.message
        return "Server error. Please try again later."
    return GENERIC_ERROR


class ChatController:
    """Stateful client for one chat surface.

    Usage:
        async with ChatController(settings, transport, backend, store) as chat:
            reply = await chat.submit("Find 2BHK flats in Pune")
    """

    def __init__(
        self,
        settings: Settings,
        transport: ChatTransport,
        backend: BackendClient,
        store: LocalStore,
        guard: ContentGuard | None = None,
        conversation: ConversationStore | None = None,
        on_notice: NoticeHandler | None = None,
    ):
        self.settings = settings
        self.transport = transport
        self.backend = backend
        self.store = store
        self.guard = guard or ContentGuard()
        self.conversation = conversation or ConversationStore()
        self.namespace = namespace_for(settings.user_id if settings.authenticated else None)
        self.identity = SessionIdentity(store, self.namespace)
        self.governor = RateGovernor(backend.rate_limit_status, settings.user_role, store)
        self.reporter = ModerationReporter(backend.reports.create, max_pending=MODERATION_QUEUE_SIZE)
        self.analytics = EventLog(store, self.namespace, "analytics", EVENT_LOG_CAPACITY)
        self.errors = EventLog(store, self.namespace, "errors", EVENT_LOG_CAPACITY)
        self.preferences = Preferences()
        self.modes = ModeState()
        self.ratings: dict[str, RatingValue] = {}
        self.bookmarks: dict[str, Bookmark] = {}
        self.is_loading = False
        self._on_notice = on_notice
        self.identity.on_reset(self._on_session_reset)

    @property
    def authenticated(self) -> bool:
        return self.settings.authenticated

    @property
    def mode(self) -> UiMode:
        return self.modes.current

    async def start(self) -> None:
        """Restore local state and, for signed-in users, the server transcript."""
        self.preferences = await Preferences.load(self.store, self.namespace)
        await self.governor.load()
        session_id = await self.identity.get_or_create_session_id()

        cached = await self.store.get_json(scoped_key(self.namespace, RATINGS_KEY), default={})
        if isinstance(cached, dict):
            self.ratings = {k: RatingValue(v) for k, v in cached.items() if v in ("up", "down")}
        saved_marks = await self.store.get_json(scoped_key(self.namespace, BOOKMARKS_KEY), default=[])
        self.bookmarks = {
            b["key"]: Bookmark.model_validate(b)
            for b in saved_marks if isinstance(b, dict) and "key" in b
        }

        if self.authenticated:
            await self.load_history(session_id, announce=False)
        await self.governor.refresh()
        self.modes.open(UiMode.CHAT)

    async def close(self) -> None:
        self.transport.cancel()
        await self.reporter.close()

    async def __aenter__(self) -> "ChatController":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _notify(self, level: NoticeLevel, text: str) -> None:
        logger.debug("notice[%s]: %s", level.value, text)
        if self._on_notice is not None:
            self._on_notice(Notice(level=level, text=text))

    async def _on_session_reset(self, old: str, new: str) -> None:
        self.ratings = {}

    # Outbound pipeline

    def _validate(self, text: str) -> str:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Please enter a message.")
        if len(text) > self.preferences.max_message_length:
            raise ValidationError(
                f"Message is too long ({len(text)} characters, "
                f"limit {self.preferences.max_message_length})."
            )
        if len(self.conversation) >= self.preferences.max_messages:
            raise ValidationError("Message limit reached. Clear the chat or start a new session.")
        if self.is_loading:
            raise ValidationError("Please wait for the current response to finish.")
        return text

    def _gate(self) -> None:
        if not self.governor.check_allowed():
            self.modes.open(UiMode.SIGN_IN_PROMPT)
            raise QuotaExceededError(self.governor.info)

    async def submit(
        self,
        text: str,
        mentions: list[EntityReference] | None = None,
        attachments: list[str] | None = None,
    ) -> Message | None:
        """Send user input through the full pipeline.

        Returns:
            The assistant message, the restricted placeholder, the error
            message appended on transport failure, or None when aborted.

        Raises:
            ValidationError: Empty, too long, transcript full, or already sending
            QuotaExceededError: The local quota mirror denies the send
        """
        text = self._validate(text)
        self._gate()

        self.is_loading = True
        try:
            verdict = self.guard.classify(text)
            if verdict.restricted:
                return await self._restrict(text, verdict.category, verdict.reason)

            if mentions is None and "@" in text:
                mentions = await self._resolve_mentions(text)

            history = self.conversation.history_window(self.preferences.history_window)
            self.conversation.append(Message.user(text, attachments))
            await self.identity.save_draft("")
            return await self._exchange(text, history, self.preferences.streaming, mentions or [])
        finally:
            self.is_loading = False

    def _outgoing(self, text: str) -> str:
        """Wire form of user text: a non-neutral tone rides along as a prefix."""
        tone = self.preferences.tone
        return text if tone == Tone.NEUTRAL else f"[Tone: {tone.value}] {text}"

    async def _restrict(self, text: str, category: str, reason: str) -> Message:
        placeholder = Message.restricted(reason)
        self.conversation.append(placeholder)
        session_id = await self.identity.get_or_create_session_id()
        self.reporter.submit(ModerationReport(
            message=text,
            category=category,
            reason=reason,
            session_id=session_id,
            message_index=len(self.conversation) - 1,
        ))
        await self.analytics.record("message_restricted", category=category)
        logger.info("Blocked outbound message (%s)", category)
        return placeholder

    async def _resolve_mentions(self, text: str) -> list[EntityReference]:
        try:
            return await self.backend.properties.resolve_mentions(text)
        except BackendError as e:
            logger.warning("Could not resolve mentions: %s", e)
            return []

    async def _exchange(
        self,
        text: str,
        history: list[Message],
        stream: bool,
        mentions: list[EntityReference],
    ) -> Message | None:
        session_id = await self.identity.get_or_create_session_id()
        prefs = self.preferences
        request = ChatRequest(
            message=self._outgoing(text),
            history=[HistoryEntry(role=m.role.value, content=m.content) for m in history],
            session_id=session_id,
            tone=prefs.tone.value,
            response_length=prefs.response_length.value,
            creativity=prefs.creativity.value,
            temperature=prefs.temperature,
            top_p=prefs.top_p,
            top_k=prefs.top_k,
            max_tokens=prefs.max_tokens,
            stream=stream,
            mentions=mentions,
        )

        on_chunk = None
        if stream:
            self.conversation.begin_stream()

            def on_chunk(fragment: str, accumulated: str) -> None:
                self.conversation.update_last(content=accumulated)

        try:
            result = await self.transport.send(request, on_chunk)
        except RequestAborted:
            self.conversation.discard_stream()
            return None
        except TransportError as e:
            self.conversation.discard_stream()
            return await self._fail(e, text)

        if stream and self.conversation.streaming is None:
            # transcript replaced while the reply was arriving
            return None
        if stream:
            reply = self.conversation.finish_stream(result.response)
        else:
            reply = Message.assistant(result.response)
            self.conversation.append(reply)

        if result.session_id and result.session_id != session_id:
            await self.identity.adopt(result.session_id)
        await self.governor.record_send()
        await self.governor.refresh()
        await self.analytics.record("message_sent", streamed=result.streamed, length=len(result.response))
        return reply

    async def _fail(self, error: TransportError, original: str) -> Message:
        logger.warning("Chat request failed (%s): %s", error.kind, error.message)
        info = error.details.get("rateLimitInfo") if error.status == 429 else None
        if isinstance(info, dict):
            self.governor.update(RateLimitInfo.model_validate(info))
        failure = Message.error(describe_transport_error(error), original)
        self.conversation.append(failure)
        await self.errors.record("transport_error", kind=error.kind, status=error.status, message=error.message)
        return failure

    async def retry(self, index: int) -> Message | None:
        """Resubmit the user text behind an error message, without streaming.

        Raises:
            ValidationError: index does not point at a retryable error message
            QuotaExceededError: The local quota mirror denies the send
        """
        if not 0 <= index < len(self.conversation):
            raise ValidationError(f"No message at index {index}.")
        failed = self.conversation[index]
        if not failed.is_error or not failed.original_user_message:
            raise ValidationError("Only failed responses can be retried.")
        if self.is_loading:
            raise ValidationError("Please wait for the current response to finish.")
        self._gate()

        self.is_loading = True
        try:
            self.conversation.remove(index)
            history = self.conversation.history_window(self.preferences.history_window)
            return await self._exchange(failed.original_user_message, history, False, [])
        finally:
            self.is_loading = False

    def cancel(self) -> bool:
        """Abort the in-flight send. No transcript entry results."""
        return self.transport.cancel()

    async def save_draft(self, text: str) -> None:
        await self.identity.save_draft(text)

    async def load_draft(self) -> str:
        return await self.identity.load_draft()

    # Session lifecycle

    def _abandon_send(self) -> None:
        """Stop the in-flight send before the transcript is replaced."""
        self.transport.cancel()
        self.conversation.discard_stream()

    async def clear(self) -> bool:
        """Clear the transcript and start a new session id.

        Signed-in users clear the server copy first; if that fails
        nothing changes locally.
        """
        if self.authenticated:
            session_id = await self.identity.get_or_create_session_id()
            try:
                await self.backend.history.clear(session_id)
            except BackendError as e:
                logger.error("Error clearing chat history: %s", e)
                self._notify(NoticeLevel.ERROR, e.message or "Failed to clear chat history")
                return False
        self._abandon_send()
        self.conversation.clear()
        await self.identity.reset()
        self.modes.back()
        self._notify(NoticeLevel.SUCCESS, "Chat cleared")
        return True

    async def new_session(self) -> bool:
        """Save the current transcript, then switch to a fresh session."""
        if not self.authenticated:
            self._notify(NoticeLevel.ERROR, "Please log in to create new sessions")
            return False
        session_id = await self.identity.get_or_create_session_id()
        try:
            await self.backend.history.save(session_id, messages=self.conversation.messages)
        except BackendError as e:
            logger.error("Failed to save current session: %s", e)
        self._abandon_send()
        self.conversation.clear()
        await self.identity.reset()
        self._notify(NoticeLevel.SUCCESS, "New chat session created")
        return True

    async def load_history(self, session_id: str | None = None, announce: bool = True) -> bool:
        """Replace the transcript with a session's server copy."""
        target = session_id or await self.identity.get_or_create_session_id()
        try:
            transcript = await self.backend.history.load(target)
            remote = await self.backend.ratings.for_session(target)
        except BackendError as e:
            logger.error("Error loading chat history: %s", e)
            if announce:
                self._notify(NoticeLevel.ERROR, "Failed to load session")
            return False

        self._abandon_send()
        self.conversation.replace_all(transcript.messages)
        await self.identity.adopt(target)
        self.ratings = remote
        await self._persist_ratings()
        if announce:
            self.modes.back()
            self._notify(NoticeLevel.SUCCESS, "Session loaded")
        return True

    async def rename_session(self, name: str) -> bool:
        session_id = await self.identity.get_or_create_session_id()
        try:
            await self.backend.history.save(session_id, name=name)
        except (BackendError, ValueError) as e:
            self._notify(NoticeLevel.ERROR, f"Failed to rename session: {e}")
            return False
        self._notify(NoticeLevel.SUCCESS, "Session renamed")
        return True

    # Feedback

    def _message_at(self, index: int) -> Message | None:
        if 0 <= index < len(self.conversation):
            return self.conversation[index]
        self._notify(NoticeLevel.ERROR, f"No message at index {index}")
        return None

    async def toggle_bookmark(self, index: int) -> bool | None:
        """Bookmark or un-bookmark a message. Returns the new state, None on failure."""
        if not self.authenticated:
            self._notify(NoticeLevel.ERROR, "Please sign in to bookmark messages")
            return None
        message = self._message_at(index)
        if message is None:
            return None

        session_id = await self.identity.get_or_create_session_id()
        key = Bookmark.make_key(session_id, index, message.timestamp)
        try:
            if key in self.bookmarks:
                await self.backend.bookmarks.remove(self.bookmarks[key])
                del self.bookmarks[key]
                state = False
            else:
                self.bookmarks[key] = await self.backend.bookmarks.add(session_id, index, message)
                state = True
        except BackendError as e:
            logger.error("Bookmark update failed: %s", e)
            self._notify(NoticeLevel.ERROR, "Failed to update bookmark")
            return None

        await self.store.set_json(
            scoped_key(self.namespace, BOOKMARKS_KEY),
            [b.model_dump(mode="json", by_alias=True) for b in self.bookmarks.values()],
        )
        self._notify(NoticeLevel.SUCCESS, "Message bookmarked" if state else "Bookmark removed")
        return state

    def bookmarked_indices(self) -> set[int]:
        """Indices of bookmarked messages in the current session."""
        current = self.identity.current
        return {b.message_index for b in self.bookmarks.values() if b.session_id == current}

    async def rate(self, index: int, value: RatingValue | str, reason: str | None = None) -> bool:
        if not self.authenticated:
            self._notify(NoticeLevel.ERROR, "Please log in to rate messages")
            return False
        message = self._message_at(index)
        if message is None:
            return False
        value = RatingValue(value)
        session_id = await self.identity.get_or_create_session_id()
        try:
            await self.backend.ratings.rate(session_id, index, message, value, reason)
        except BackendError as e:
            logger.error("Error rating message: %s", e)
            self._notify(NoticeLevel.ERROR, "Failed to save rating")
            return False

        self.ratings[rating_key(index, message.timestamp)] = value
        await self._persist_ratings()
        self._notify(
            NoticeLevel.SUCCESS,
            "Thanks for the feedback!" if value == RatingValue.UP else "Feedback recorded",
        )
        return True

    async def _persist_ratings(self) -> None:
        await self.store.set_json(
            scoped_key(self.namespace, RATINGS_KEY),
            {k: v.value for k, v in self.ratings.items()},
        )

    async def report(self, index: int, reason: str, category: str | None = None) -> bool:
        """File a user report against a message."""
        message = self._message_at(index)
        if message is None:
            return False
        session_id = await self.identity.get_or_create_session_id()
        try:
            await self.backend.reports.create(ContentReport(
                message_content=message.content,
                reason=reason,
                category=category,
                session_id=session_id,
                message_index=index,
                reported_by="user",
            ))
        except BackendError as e:
            logger.error("Error reporting message: %s", e)
            self._notify(NoticeLevel.ERROR, "Failed to submit report")
            return False
        self.modes.back()
        self._notify(NoticeLevel.SUCCESS, "Report submitted. Thank you.")
        return True

    async def upload(self, kind: UploadKind | str, path: str | Path) -> str | None:
        """Upload an attachment and return its hosted URL, or None on failure."""
        try:
            url = await self.backend.uploads.upload(kind, path)
        except (BackendError, ValueError, OSError) as e:
            logger.error("Upload failed: %s", e)
            self._notify(NoticeLevel.ERROR, f"Upload failed: {e}")
            return None
        self._notify(NoticeLevel.SUCCESS, "File uploaded")
        return url

    # Preferences

    async def update_preference(self, name: str, value: object) -> Preferences:
        """Change one preference and persist the result.

        Raises:
            KeyError: Unknown preference
            pydantic.ValidationError: Invalid value
        """
        self.preferences = self.preferences.with_value(name, value)
        await self.preferences.save(self.store, self.namespace)
        return self.preferences
