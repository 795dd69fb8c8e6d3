"""Message threads of accepted matches."""

import logging
from typing import List, Optional

from vinculo.domain.exceptions import AuthorizationError, NotFoundError, ValidationError
from vinculo.domain.models import Actor, MatchMessage, MatchRequest, MatchState
from vinculo.logging import get_logger, log_context
from vinculo.persistence.repositories import MatchRepository, MessageRepository
from vinculo.utils.timestamps import format_timestamp_for_log, utc_now

from .toggle import SystemToggle

logger = get_logger(__name__, component="messaging")

DEFAULT_MAX_CONTENT_LENGTH = 2000


class MatchMessaging:
    """Lists, sends and acknowledges messages of one match.

    Every call checks the system toggle, then requires the actor to be a party
    of the match and the match to be ``aceptado``.
    """

    def __init__(
        self,
        match_repo: MatchRepository,
        message_repo: MessageRepository,
        toggle: SystemToggle,
        max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.match_repo = match_repo
        self.message_repo = message_repo
        self.toggle = toggle
        self.max_content_length = max_content_length
        self.logger = logger_instance or logger

    def _open_thread(self, match_id: int, actor: Actor) -> MatchRequest:
        self.toggle.assert_enabled()

        match = self.match_repo.get(match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")

        if not match.is_party(actor.user_id):
            raise AuthorizationError(f"User {actor.user_id} is not a party to match {match_id}")

        if match.state is not MatchState.ACEPTADO:
            raise AuthorizationError(
                f"Messaging requires an accepted match; match {match_id} is '{match.state.value}'"
            )

        return match

    def list_messages(self, match_id: int, actor: Actor) -> List[MatchMessage]:
        """Thread messages, oldest first."""
        self._open_thread(match_id, actor)
        return self.message_repo.list_for_match(match_id)

    def send(self, match_id: int, actor: Actor, content: str) -> MatchMessage:
        """Append a message to the thread.

        Args:
            match_id: Accepted match id
            actor: Sending party
            content: Message text; trimmed before storing

        Returns:
            The stored message (unread)

        Raises:
            SystemDisabledError: If the match system is off
            NotFoundError: If the match does not exist
            AuthorizationError: If the actor is not a party or the match is not accepted
            ValidationError: If the content is empty or too long
        """
        with log_context(match_id=match_id, actor_user_id=actor.user_id):
            self._open_thread(match_id, actor)

            text = (content or "").strip()
            if not text:
                raise ValidationError("Message content cannot be empty")
            if self.max_content_length and len(text) > self.max_content_length:
                raise ValidationError(
                    f"Message content exceeds {self.max_content_length} characters"
                )

            message = self.message_repo.add(match_id, actor.user_id, text, utc_now())

            self.logger.info(
                f"Message {message.id} sent on match {match_id}",
                extra={
                    "event": "match.message.sent",
                    "message_id": message.id,
                    "content_length": len(text),
                    "sent_at": format_timestamp_for_log(message.sent_at),
                },
            )
            return message

    def mark_read(self, match_id: int, actor: Actor) -> int:
        """Mark the counterpart's unread messages as read.

        Returns:
            Number of messages updated (0 on a repeated call)
        """
        with log_context(match_id=match_id, actor_user_id=actor.user_id):
            match = self._open_thread(match_id, actor)
            count = self.message_repo.mark_read(match_id, actor.user_id)

            if count:
                self.logger.info(
                    f"Marked {count} message(s) read on match {match_id}",
                    extra={
                        "event": "match.messages.read",
                        "count": count,
                        "sender_user_id": match.counterpart_of(actor.user_id),
                    },
                )
            return count
