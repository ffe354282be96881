"""AI chat service package exports."""

from .service import ChatService, SendMessageResult, get_chat_service, get_company_store
from .models import AICompany, AIProvider, Chat, ChatMessage, ProviderConfig, ProviderResponse

__all__ = [
    "AICompany",
    "AIProvider",
    "Chat",
    "ChatMessage",
    "ChatService",
    "ProviderConfig",
    "ProviderResponse",
    "SendMessageResult",
    "get_chat_service",
    "get_company_store",
]
