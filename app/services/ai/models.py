"""Data models used by the AI chat service."""
from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ChatRole = Literal["system", "user", "assistant"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def estimate_tokens(text: str) -> int:
    """Rough token estimate: one token per four characters, rounded up."""
    return math.ceil(len(text) / 4)


class AIProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    CUSTOM = "custom"


# Default model catalogue offered when a company is created without one
PROVIDER_MODELS: Dict[AIProvider, List[str]] = {
    AIProvider.OPENAI: ["gpt-4", "gpt-4-turbo", "gpt-4o", "gpt-4o-mini", "gpt-3.5-turbo"],
    AIProvider.GEMINI: ["gemini-2.0-flash", "gemini-1.5-pro", "gemini-1.5-flash", "gemini-pro"],
    AIProvider.ANTHROPIC: [
        "claude-3-opus-20240229",
        "claude-3-sonnet-20240229",
        "claude-3-haiku-20240307",
    ],
    AIProvider.CUSTOM: [],
}


class ChatMessage(BaseModel):
    """A single message in a chat transcript. Never modified after it is appended."""

    model_config = ConfigDict(frozen=True)

    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=utcnow)
    token_count: int = 0

    @classmethod
    def create(cls, role: ChatRole, content: str) -> "ChatMessage":
        return cls(role=role, content=content, token_count=estimate_tokens(content))


class Chat(BaseModel):
    """Conversation container persisted by the chat store."""

    id: str = Field(default_factory=new_id)
    organization_id: str
    company_id: str
    title: str
    ai_model: str
    messages: List[ChatMessage] = Field(default_factory=list)
    total_tokens: int = 0
    max_history_messages: int = Field(50, ge=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def append_message(self, message: ChatMessage) -> None:
        """Append a message, account for its tokens and trim the history window."""
        self.messages.append(message)
        self.total_tokens += message.token_count
        self.trim_history()
        self.updated_at = utcnow()

    def trim_history(self) -> List[ChatMessage]:
        """Evict the oldest non-system messages beyond ``max_history_messages``.

        System messages are always kept, ahead of the retained window. Returns
        the evicted messages.
        """
        system_messages = [m for m in self.messages if m.role == "system"]
        other_messages = [m for m in self.messages if m.role != "system"]

        excess = len(other_messages) - self.max_history_messages
        if excess <= 0:
            return []

        evicted = other_messages[:excess]
        self.messages = system_messages + other_messages[excess:]
        self.total_tokens -= sum(m.token_count for m in evicted)
        return evicted

    @property
    def non_system_count(self) -> int:
        return sum(1 for m in self.messages if m.role != "system")


class ProviderConfig(BaseModel):
    """Credentials for one provider call. Resolved per request, never cached."""

    # Plain string so that unknown values reach the adapter dispatch
    provider: str
    api_key: str
    api_secret: Optional[str] = None
    base_url: Optional[str] = None


class ProviderResponse(BaseModel):
    content: str
    model: str
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


class AICompany(BaseModel):
    """Provider account registered by an organization."""

    id: str = Field(default_factory=new_id)
    organization_id: str
    name: str
    provider: AIProvider
    api_key: str
    api_secret: Optional[str] = None
    base_url: Optional[str] = None
    default_model: Optional[str] = None
    available_models: List[str] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_provider_config(self) -> ProviderConfig:
        return ProviderConfig(
            provider=self.provider.value,
            api_key=self.api_key,
            api_secret=self.api_secret,
            base_url=self.base_url,
        )


class CompanyRef(BaseModel):
    name: str
    provider: AIProvider


class ChatSummary(BaseModel):
    id: str
    title: str
    ai_model: str
    company_id: str
    company: Optional[CompanyRef] = None
    total_tokens: int
    max_history_messages: int
    message_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_chat(cls, chat: Chat, company: Optional[AICompany] = None) -> "ChatSummary":
        return cls(
            id=chat.id,
            title=chat.title,
            ai_model=chat.ai_model,
            company_id=chat.company_id,
            company=CompanyRef(name=company.name, provider=company.provider) if company else None,
            total_tokens=chat.total_tokens,
            max_history_messages=chat.max_history_messages,
            message_count=len(chat.messages),
            created_at=chat.created_at,
            updated_at=chat.updated_at,
        )


class ChatStats(BaseModel):
    total_chats: int = 0
    total_messages: int = 0
    total_tokens: int = 0


class CompanyStats(BaseModel):
    total_companies: int = 0
    active_companies: int = 0
    by_provider: Dict[str, int] = Field(default_factory=dict)
