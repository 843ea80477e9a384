"""
Direct messages between users.

A message is written in one short transaction; the notification relay
worker later pushes it to the receiver's ``messages:<user_id>`` channel,
the same outbox pattern notifications use.
"""

from __future__ import annotations

import logging
import uuid

from orbitride.config import settings
from orbitride.domain.entities import Conversation
from orbitride.domain.exceptions import Forbidden, InvalidRequest, NotFound
from orbitride.infrastructure.models import MessageModel
from orbitride.infrastructure.repositories import (
    MessageRepository,
    ProfileRepository,
)

from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class MessageService:
    def __init__(self, uow: UnitOfWork, *, max_length: int | None = None):
        self.uow = uow
        self.max_length = max_length or settings.message_max_length

    async def send(
        self, actor_id: uuid.UUID, receiver_id: uuid.UUID, content: str
    ) -> MessageModel:
        content = (content or "").strip()
        if not content:
            raise InvalidRequest("A message cannot be empty")
        if len(content) > self.max_length:
            raise InvalidRequest(
                f"A message cannot be longer than {self.max_length} characters"
            )
        if actor_id == receiver_id:
            raise Forbidden("You cannot message yourself")

        async def work(session, _outbox):
            profiles = ProfileRepository(session)
            if await profiles.get_by_id(actor_id) is None:
                raise NotFound("Your profile was not found")
            if await profiles.get_by_id(receiver_id) is None:
                raise NotFound("Profile not found")
            return await MessageRepository(session).create(
                actor_id, receiver_id, content
            )

        message, _ = await self.uow.run(work, label="send message")
        logger.info("Message %s sent from %s to %s", message.id, actor_id, receiver_id)
        return message

    async def list_conversations(self, actor_id: uuid.UUID) -> list[Conversation]:
        """
        One entry per other user, most recent conversation first.

        Messages whose other party has no profile are skipped.
        """

        async def work(session, _outbox):
            messages = await MessageRepository(session).list_involving(actor_id)
            others = await ProfileRepository(session).get_many(
                m.receiver_id if m.sender_id == actor_id else m.sender_id
                for m in messages
            )

            conversations: dict[uuid.UUID, Conversation] = {}
            # Newest first, so the first message seen per user is the latest
            for message in messages:
                incoming = message.receiver_id == actor_id
                other_id = message.sender_id if incoming else message.receiver_id
                other = others.get(other_id)
                if other is None:
                    continue
                conversation = conversations.get(other_id)
                if conversation is None:
                    conversation = conversations[other_id] = Conversation(
                        other_user=other, last_message=message
                    )
                if incoming and not message.read:
                    conversation.unread_count += 1
            return list(conversations.values())

        conversations, _ = await self.uow.run(work, label="list conversations")
        return conversations

    async def get_thread(
        self, actor_id: uuid.UUID, other_id: uuid.UUID
    ) -> list[MessageModel]:
        """Messages with *other_id*, oldest first; theirs are marked read."""

        async def work(session, _outbox):
            if await ProfileRepository(session).get_by_id(other_id) is None:
                raise NotFound("Profile not found")
            repo = MessageRepository(session)
            await repo.mark_read_from(actor_id, other_id)
            return await repo.list_between(actor_id, other_id)

        messages, _ = await self.uow.run(work, label="get message thread")
        return messages

    async def unread_count(self, actor_id: uuid.UUID) -> int:
        conversations = await self.list_conversations(actor_id)
        return sum(c.unread_count for c in conversations)
