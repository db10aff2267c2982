"""Conversation management for the per-book chat feature."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional
from urllib.parse import quote

from bookbite.chat.stream import ChatStreamClient, ChunkSink
from bookbite.client import AsyncClient
from bookbite.exceptions import TransportError
from bookbite.models import ChatConversation, ChatResponse, SendMessageRequest, StreamEvent


class ChatRepository(ABC):
    """Create, read, list and delete conversations and send messages in them."""

    @abstractmethod
    async def create_conversation(self, book_id: str) -> ChatConversation:
        ...

    @abstractmethod
    async def get_conversation(self, book_id: str, conversation_id: str) -> ChatResponse:
        ...

    @abstractmethod
    async def send_message(
        self, book_id: str, conversation_id: str, message: str
    ) -> ChatResponse:
        ...

    @abstractmethod
    async def send_message_streaming(
        self, book_id: str, conversation_id: str, message: str, on_chunk: ChunkSink
    ) -> None:
        ...

    @abstractmethod
    async def list_conversations(self, book_id: str) -> list[ChatConversation]:
        ...

    @abstractmethod
    async def delete_conversation(self, book_id: str, conversation_id: str) -> None:
        ...


class RemoteChatRepository(ChatRepository):
    """Chat repository backed by the content API.

    Args:
        client: An open :class:`~bookbite.client.AsyncClient`.
        stream_client: Client used for streamed replies. Built from *client*
            when omitted.
    """

    def __init__(
        self, client: AsyncClient, stream_client: Optional[ChatStreamClient] = None
    ) -> None:
        self._client = client
        self._stream_client = stream_client or ChatStreamClient(client)

    @property
    def stream_client(self) -> ChatStreamClient:
        return self._stream_client

    @staticmethod
    def _conversations_path(book_id: str, conversation_id: Optional[str] = None) -> str:
        path = f"books/{quote(book_id, safe='')}/chat/conversations"
        if conversation_id is not None:
            path = f"{path}/{quote(conversation_id, safe='')}"
        return path

    async def create_conversation(self, book_id: str) -> ChatConversation:
        return await self._client.post(self._conversations_path(book_id), {}, ChatConversation)

    async def get_conversation(self, book_id: str, conversation_id: str) -> ChatResponse:
        """Return the conversation together with its messages."""
        return await self._client.get(
            self._conversations_path(book_id, conversation_id), ChatResponse
        )

    async def send_message(
        self, book_id: str, conversation_id: str, message: str
    ) -> ChatResponse:
        """Send *message* and wait for the complete reply."""
        path = f"{self._conversations_path(book_id, conversation_id)}/messages"
        return await self._client.post(path, SendMessageRequest(message=message), ChatResponse)

    async def send_message_streaming(
        self, book_id: str, conversation_id: str, message: str, on_chunk: ChunkSink
    ) -> None:
        """Send *message* and deliver the reply incrementally to *on_chunk*."""
        await self._stream_client.send(book_id, conversation_id, message, on_chunk)

    def stream_events(
        self, book_id: str, conversation_id: str, message: str
    ) -> AsyncIterator[StreamEvent]:
        return self._stream_client.iter_events(book_id, conversation_id, message)

    async def list_conversations(self, book_id: str) -> list[ChatConversation]:
        return await self._client.get(self._conversations_path(book_id), list[ChatConversation])

    async def delete_conversation(self, book_id: str, conversation_id: str) -> None:
        await self._client.delete(self._conversations_path(book_id, conversation_id))


class LocalChatRepository(ChatRepository):
    """Offline stand-in: chat needs the server, so every call fails."""

    @staticmethod
    def _offline() -> TransportError:
        return TransportError("Chat is unavailable offline")

    async def create_conversation(self, book_id: str) -> ChatConversation:
        raise self._offline()

    async def get_conversation(self, book_id: str, conversation_id: str) -> ChatResponse:
        raise self._offline()

    async def send_message(
        self, book_id: str, conversation_id: str, message: str
    ) -> ChatResponse:
        raise self._offline()

    async def send_message_streaming(
        self, book_id: str, conversation_id: str, message: str, on_chunk: ChunkSink
    ) -> None:
        raise self._offline()

    async def list_conversations(self, book_id: str) -> list[ChatConversation]:
        raise self._offline()

    async def delete_conversation(self, book_id: str, conversation_id: str) -> None:
        raise self._offline()
