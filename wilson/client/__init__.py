"""Wilson backend client package."""
from wilson.client.api import BackendClient
from wilson.client.conversation import Conversation
from wilson.client.display import ConsoleInteraction, display_event
from wilson.client.models import ChatRequest, HistoryMessage


__all__ = [
    "BackendClient",
    "ChatRequest",
    "ConsoleInteraction",
    "Conversation",
    "HistoryMessage",
    "display_event",
]
