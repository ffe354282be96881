"""Shared fixtures for the chat service test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Tuple
from unittest.mock import AsyncMock

import pytest

from app.services.ai.chat_store import ChatStore
from app.services.ai.company_store import AICompanyStore
from app.services.ai.models import ProviderConfig, ProviderResponse
from app.services.ai.service import ChatService

ORG_ID = "org1"
COMPANY_ID = "company1"


class StaticResolver:
    """Credential resolver backed by a dict of (organization, company) -> config."""

    def __init__(self, configs: Optional[Dict[Tuple[str, str], ProviderConfig]] = None):
        self.configs = configs or {}
        self.calls = 0

    def resolve(self, organization_id: str, company_id: str) -> Optional[ProviderConfig]:
        self.calls += 1
        return self.configs.get((organization_id, company_id))


@pytest.fixture
def chat_store(tmp_path: Path) -> ChatStore:
    return ChatStore(tmp_path / "chats")


@pytest.fixture
def company_store(tmp_path: Path) -> AICompanyStore:
    return AICompanyStore(tmp_path / "companies")


@pytest.fixture
def openai_config() -> ProviderConfig:
    return ProviderConfig(provider="openai", api_key="sk-test-1234")


@pytest.fixture
def resolver(openai_config: ProviderConfig) -> StaticResolver:
    return StaticResolver({(ORG_ID, COMPANY_ID): openai_config})


@pytest.fixture
def provider_call() -> AsyncMock:
    return AsyncMock(return_value=ProviderResponse(content="Hello from the model", model="gpt-4o-mini"))


@pytest.fixture
def chat_service(chat_store: ChatStore, resolver: StaticResolver, provider_call: AsyncMock) -> ChatService:
    return ChatService(chat_store, resolver, provider_call=provider_call)
