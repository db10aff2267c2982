"""Per-book chat: conversation management and streamed replies.

:class:`ChatStreamClient` consumes the server-sent-event reply stream;
:class:`RemoteChatRepository` wraps the conversation routes and delegates
streamed sends to it. :class:`LocalChatRepository` is the offline
variant and always fails with a transport failure.
"""

from bookbite.chat.repository import ChatRepository, LocalChatRepository, RemoteChatRepository
from bookbite.chat.stream import ChatStreamClient, ChunkSink, StreamState

__all__ = [
    "ChatRepository",
    "ChatStreamClient",
    "ChunkSink",
    "LocalChatRepository",
    "RemoteChatRepository",
    "StreamState",
]
