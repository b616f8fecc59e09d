"""Chat history and assistant replies."""

import logging
import secrets

from dinner.core.collaborator import call_collaborator
from dinner.db.adapter import EntityStore
from dinner.llm.generator import MealGenerator
from dinner.models.entities import ChatMessage

logger = logging.getLogger(__name__)


def new_message_id() -> str:
    return f"msg-{secrets.token_hex(6)}"


class ChatService:
    def __init__(self, store: EntityStore, generator: MealGenerator):
        self.store = store
        self.generator = generator

    async def list_messages(self) -> list[ChatMessage]:
        return await self.store.list_messages()

    async def save_message(self, role: str, content: str) -> ChatMessage:
        return await self.store.save_message(ChatMessage(id=new_message_id(), role=role, content=content))

    async def send(self, content: str) -> list[ChatMessage]:
        """
        Store the user's message and the assistant's reply.

        The user message is saved before the collaborator is called, so it
        survives a failed reply.
        """
        user_message = await self.save_message("user", content)
        history = await self.store.list_messages()
        household = await self.store.get_household()

        reply = await call_collaborator(self.generator.chat_reply(history, household), what="chat")
        assistant_message = await self.save_message("assistant", reply)
        return [user_message, assistant_message]
