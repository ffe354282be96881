"""Chat service owning message history, token accounting and provider calls."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from functools import lru_cache
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Union

from app.core.config import settings
from app.core.exceptions import ConfigurationError, NotFoundError

from . import providers
from .chat_store import ChatStore
from .company_store import AICompanyStore, CompanyCredentialResolver
from .models import (
    Chat,
    ChatMessage,
    ChatRole,
    ChatStats,
    ChatSummary,
    ProviderConfig,
    ProviderResponse,
    utcnow,
)

logger = logging.getLogger(__name__)

ERROR_PREFIX = "⚠️ AI Error: "

ProviderCall = Callable[[ProviderConfig, str, Sequence[ChatMessage]], Awaitable[ProviderResponse]]


class CredentialResolver(Protocol):
    def resolve(self, organization_id: str, company_id: str) -> Optional[ProviderConfig]:
        ...


@dataclass
class ProviderFailure:
    """Outcome of a provider call that raised."""

    message: str


@dataclass
class SendMessageResult:
    user_message: ChatMessage
    assistant_message: ChatMessage


@dataclass
class _ChatLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class ChatService:
    """Facade for chat lifecycle and the send-message transaction."""

    def __init__(
        self,
        store: ChatStore,
        resolver: CredentialResolver,
        *,
        provider_call: Optional[ProviderCall] = None,
        company_store: Optional[AICompanyStore] = None,
        default_max_history: int = 50,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.provider_call = provider_call or providers.send_message
        self.company_store = company_store
        self.default_max_history = default_max_history
        self._locks: Dict[str, _ChatLock] = {}

    # ------------------------------------------------------------------
    # Chat management
    # ------------------------------------------------------------------
    async def create_chat(
        self,
        organization_id: str,
        *,
        company_id: str,
        title: str,
        ai_model: str,
        max_history_messages: Optional[int] = None,
        system_prompt: Optional[str] = None,
    ) -> Chat:
        if max_history_messages is None:
            max_history_messages = self.default_max_history
        _check_history_limit(max_history_messages)
        chat = Chat(
            organization_id=organization_id,
            company_id=company_id,
            title=title,
            ai_model=ai_model,
            max_history_messages=max_history_messages,
        )
        if system_prompt:
            system_message = ChatMessage.create("system", system_prompt)
            chat.messages.append(system_message)
            chat.total_tokens += system_message.token_count
        self.store.save(chat)
        logger.info(f"Created chat {chat.id} for organization {organization_id}")
        return chat

    async def get_chat(self, organization_id: str, chat_id: str) -> Optional[Chat]:
        chat = self.store.get(chat_id)
        if chat is None or chat.organization_id != organization_id:
            return None
        return chat

    async def list_chats(self, organization_id: str, *, company_id: Optional[str] = None) -> List[ChatSummary]:
        chats = self.store.list_for_organization(organization_id)
        if company_id:
            chats = [chat for chat in chats if chat.company_id == company_id]
        chats.sort(key=lambda chat: chat.updated_at, reverse=True)

        companies = {}
        if self.company_store is not None:
            for chat_company_id in {chat.company_id for chat in chats}:
                companies[chat_company_id] = self.company_store.get(organization_id, chat_company_id)
        return [ChatSummary.from_chat(chat, companies.get(chat.company_id)) for chat in chats]

    async def delete_chat(self, organization_id: str, chat_id: str) -> bool:
        if await self.get_chat(organization_id, chat_id) is None:
            return False
        async with self._chat_lock(chat_id):
            return self.store.delete(chat_id)

    async def update_settings(
        self,
        chat_id: str,
        *,
        title: Optional[str] = None,
        max_history_messages: Optional[int] = None,
        organization_id: Optional[str] = None,
    ) -> Chat:
        if max_history_messages is not None:
            _check_history_limit(max_history_messages)

        # Lowering the limit does not trim here; the next append does
        async with self._chat_lock(chat_id):
            chat = self._load_chat(chat_id, organization_id)
            if title is not None:
                chat.title = title
            if max_history_messages is not None:
                chat.max_history_messages = max_history_messages
            chat.updated_at = utcnow()
            return self.store.save(chat)

    async def get_stats(self, organization_id: str) -> ChatStats:
        chats = self.store.list_for_organization(organization_id)
        return ChatStats(
            total_chats=len(chats),
            total_messages=sum(len(chat.messages) for chat in chats),
            total_tokens=sum(chat.total_tokens for chat in chats),
        )

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------
    async def append_message(
        self,
        chat_id: str,
        role: ChatRole,
        content: str,
        *,
        organization_id: Optional[str] = None,
    ) -> ChatMessage:
        async with self._chat_lock(chat_id):
            return self._append(chat_id, role, content, organization_id)

    async def send_message(
        self,
        chat_id: str,
        user_text: str,
        *,
        organization_id: Optional[str] = None,
    ) -> SendMessageResult:
        """Record the user's message, ask the provider, record its reply.

        Only a missing chat or provider company raises. Once the user message is
        stored, provider failures become an error-marked assistant message.
        """
        async with self._chat_lock(chat_id):
            chat = self._load_chat(chat_id, organization_id)

            config = self.resolver.resolve(chat.organization_id, chat.company_id)
            if config is None:
                raise NotFoundError("AI Company not found")

            user_message = self._append(chat_id, "user", user_text, organization_id)

            # The provider sees exactly the window persisted after the trim
            chat = self._load_chat(chat_id, organization_id)
            outcome = await self._call_provider(config, chat)

            if isinstance(outcome, ProviderFailure):
                reply = f"{ERROR_PREFIX}{outcome.message}"
            else:
                reply = outcome.content
            assistant_message = self._append(chat_id, "assistant", reply, organization_id)

        return SendMessageResult(user_message=user_message, assistant_message=assistant_message)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _load_chat(self, chat_id: str, organization_id: Optional[str]) -> Chat:
        chat = self.store.get(chat_id)
        if chat is None or (organization_id is not None and chat.organization_id != organization_id):
            raise NotFoundError("Chat not found")
        return chat

    def _append(
        self,
        chat_id: str,
        role: ChatRole,
        content: str,
        organization_id: Optional[str],
    ) -> ChatMessage:
        chat = self._load_chat(chat_id, organization_id)
        message = ChatMessage.create(role, content)
        chat.append_message(message)
        self.store.save(chat)
        return message

    async def _call_provider(self, config: ProviderConfig, chat: Chat) -> Union[ProviderResponse, ProviderFailure]:
        try:
            return await self.provider_call(config, chat.ai_model, chat.messages)
        except Exception as exc:
            logger.error(f"AI provider error for chat {chat.id}: {exc}")
            return ProviderFailure(message=str(exc) or "AI request failed")

    @asynccontextmanager
    async def _chat_lock(self, chat_id: str) -> AsyncIterator[None]:
        """Serialize mutations of one chat. The entry lives only while someone holds or awaits it."""
        entry = self._locks.get(chat_id)
        if entry is None:
            entry = _ChatLock()
            self._locks[chat_id] = entry
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                self._locks.pop(chat_id, None)


def _check_history_limit(max_history_messages: int) -> None:
    if max_history_messages < 1:
        raise ConfigurationError("maxHistoryMessages must be at least 1")


@lru_cache(maxsize=1)
def get_company_store() -> AICompanyStore:
    return AICompanyStore(settings.COMPANY_DATA_DIR)


@lru_cache(maxsize=1)
def get_chat_service() -> ChatService:
    store = ChatStore(settings.CHAT_DATA_DIR)
    company_store = get_company_store()
    return ChatService(
        store,
        CompanyCredentialResolver(company_store),
        company_store=company_store,
        default_max_history=settings.DEFAULT_MAX_HISTORY_MESSAGES,
    )
