"""Request-level operations composed from the stores and access guards."""
from __future__ import annotations

import logging
from typing import List

from .credentials import CredentialStore
from .directory import UserDirectory
from .errors import AuthError, ForbiddenError, UserNotFoundError
from .messages import MessageStore
from .models import (
    MessageDetail,
    MessageRecord,
    ReadReceipt,
    ReceivedMessage,
    SentMessage,
    UserProfile,
    UserSummary,
)
from .policy import ensure_can_mark_read, ensure_can_view, ensure_same_user
from .tokens import TokenSigner

logger = logging.getLogger("messagely.messaging")


class MessagingService:
    """Entry point used by the HTTP layer and the admin console.

    ``caller`` arguments are usernames taken from a verified session token.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        directory: UserDirectory,
        messages: MessageStore,
        signer: TokenSigner,
    ) -> None:
        self.credentials = credentials
        self.directory = directory
        self.messages = messages
        self.signer = signer

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def login(self, username: str, password: str) -> str:
        if not self.credentials.authenticate(username, password):
            logger.warning("Failed login attempt for %s", username)
            raise AuthError("Invalid username/password")

        self.credentials.touch_login(username)
        logger.info("User %s logged in", username)
        return self.signer.issue(username)

    def register(
        self,
        username: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: str,
    ) -> str:
        profile = self.credentials.register(username, password, first_name, last_name, phone)
        return self.signer.issue(profile.username)

    def identify(self, token: str) -> str:
        return self.signer.identify(token)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def list_users(self) -> List[UserSummary]:
        return self.directory.list_all()

    def get_user(self, username: str, caller: str) -> UserProfile:
        self._ensure_same_user(username, caller)
        return self.directory.get_profile(username)

    def messages_from(self, username: str, caller: str) -> List[SentMessage]:
        self._ensure_same_user(username, caller)
        if not self.directory.exists(username):
            raise UserNotFoundError(f"No such user: {username}")
        return self.directory.messages_from(username)

    def messages_to(self, username: str, caller: str) -> List[ReceivedMessage]:
        self._ensure_same_user(username, caller)
        if not self.directory.exists(username):
            raise UserNotFoundError(f"No such user: {username}")
        return self.directory.messages_to(username)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------
    def get_message(self, message_id: int, caller: str) -> MessageDetail:
        message = self.messages.get(message_id)
        try:
            ensure_can_view(message, caller)
        except ForbiddenError:
            logger.warning("User %s denied access to message %s", caller, message_id)
            raise
        return message

    def send_message(self, caller: str, to_username: str, body: str) -> MessageRecord:
        return self.messages.create(caller, to_username, body)

    def mark_message_read(self, message_id: int, caller: str) -> ReadReceipt:
        message = self.messages.get(message_id)
        try:
            ensure_can_mark_read(message, caller)
        except ForbiddenError:
            logger.warning("User %s may not mark message %s as read", caller, message_id)
            raise
        return self.messages.mark_read(message_id)

    def _ensure_same_user(self, username: str, caller: str) -> None:
        try:
            ensure_same_user(username, caller)
        except ForbiddenError:
            logger.warning("User %s denied access to account %s", caller, username)
            raise


__all__ = ["MessagingService"]
