from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import ConfigurationError, NotFoundError
from app.services.ai.chat_store import ChatStore
from app.services.ai.company_store import AICompanyStore
from app.services.ai.models import AIProvider, ProviderConfig, ProviderResponse
from app.services.ai.service import ERROR_PREFIX, ChatService

from conftest import COMPANY_ID, ORG_ID, StaticResolver


async def new_chat(service: ChatService, **kwargs):
    params = {"company_id": COMPANY_ID, "title": "Support", "ai_model": "gpt-4o-mini"}
    params.update(kwargs)
    return await service.create_chat(ORG_ID, **params)


# ============================================================================
# Chat management
# ============================================================================


@pytest.mark.asyncio
async def test_create_chat_with_system_prompt(chat_service: ChatService, chat_store: ChatStore) -> None:
    chat = await new_chat(chat_service, system_prompt="You are a helpful assistant.")

    stored = chat_store.get(chat.id)
    assert stored is not None
    assert [m.role for m in stored.messages] == ["system"]
    assert stored.total_tokens == 7
    assert stored.max_history_messages == 50


@pytest.mark.asyncio
async def test_get_chat_is_scoped_to_organization(chat_service: ChatService) -> None:
    chat = await new_chat(chat_service)

    assert await chat_service.get_chat(ORG_ID, chat.id) is not None
    assert await chat_service.get_chat("other-org", chat.id) is None


@pytest.mark.asyncio
async def test_list_chats_and_stats(chat_service: ChatService) -> None:
    first = await new_chat(chat_service, title="First")
    second = await new_chat(chat_service, title="Second", company_id="company2")
    await chat_service.append_message(first.id, "user", "hello there")

    summaries = await chat_service.list_chats(ORG_ID)
    assert [s.id for s in summaries] == [first.id, second.id]
    assert summaries[0].message_count == 1

    filtered = await chat_service.list_chats(ORG_ID, company_id="company2")
    assert [s.title for s in filtered] == ["Second"]

    stats = await chat_service.get_stats(ORG_ID)
    assert (stats.total_chats, stats.total_messages, stats.total_tokens) == (2, 1, 3)


@pytest.mark.asyncio
async def test_list_chats_includes_company_name_and_provider(
    chat_store: ChatStore, company_store: AICompanyStore, resolver: StaticResolver
) -> None:
    company = company_store.create(ORG_ID, name="Acme OpenAI", provider=AIProvider.OPENAI, api_key="sk-test-1234")
    service = ChatService(chat_store, resolver, company_store=company_store)
    await new_chat(service, company_id=company.id, title="Known")
    await new_chat(service, company_id="gone", title="Orphan")

    summaries = {s.title: s for s in await service.list_chats(ORG_ID)}

    assert summaries["Known"].company.name == "Acme OpenAI"
    assert summaries["Known"].company.provider == AIProvider.OPENAI
    assert summaries["Orphan"].company is None


@pytest.mark.asyncio
async def test_delete_chat(chat_service: ChatService, chat_store: ChatStore) -> None:
    chat = await new_chat(chat_service)

    assert await chat_service.delete_chat("other-org", chat.id) is False
    assert await chat_service.delete_chat(ORG_ID, chat.id) is True
    assert chat_store.get(chat.id) is None
    assert await chat_service.delete_chat(ORG_ID, chat.id) is False


# ============================================================================
# append_message
# ============================================================================


@pytest.mark.asyncio
async def test_append_message_unknown_chat(chat_service: ChatService) -> None:
    with pytest.raises(NotFoundError, match="Chat not found"):
        await chat_service.append_message("deadbeef", "user", "hi")


@pytest.mark.asyncio
async def test_append_message_persists_and_trims(chat_service: ChatService, chat_store: ChatStore) -> None:
    chat = await new_chat(chat_service, max_history_messages=2)

    await chat_service.append_message(chat.id, "user", "a")
    await chat_service.append_message(chat.id, "assistant", "bb")
    newest = await chat_service.append_message(chat.id, "user", "ccc")

    stored = chat_store.get(chat.id)
    assert [(m.role, m.content) for m in stored.messages] == [("assistant", "bb"), ("user", "ccc")]
    assert stored.total_tokens == 2
    assert stored.messages[-1] == newest


@pytest.mark.asyncio
async def test_append_accepts_empty_content(chat_service: ChatService, chat_store: ChatStore) -> None:
    chat = await new_chat(chat_service)

    message = await chat_service.append_message(chat.id, "assistant", "")

    assert message.token_count == 0
    assert chat_store.get(chat.id).messages[-1].content == ""


@pytest.mark.asyncio
async def test_system_prompt_survives_many_appends(chat_service: ChatService, chat_store: ChatStore) -> None:
    chat = await new_chat(chat_service, max_history_messages=3, system_prompt="Stay on topic.")

    for i in range(8):
        await chat_service.append_message(chat.id, "user", f"question {i}")

    stored = chat_store.get(chat.id)
    assert stored.messages[0].content == "Stay on topic."
    assert [m.content for m in stored.messages[1:]] == ["question 5", "question 6", "question 7"]
    assert stored.total_tokens == sum(m.token_count for m in stored.messages)


# ============================================================================
# update_settings
# ============================================================================


@pytest.mark.asyncio
async def test_lowering_limit_trims_on_next_append_only(chat_service: ChatService, chat_store: ChatStore) -> None:
    chat = await new_chat(chat_service)
    for i in range(5):
        await chat_service.append_message(chat.id, "user", f"m{i}")

    updated = await chat_service.update_settings(chat.id, title="Renamed", max_history_messages=2)

    assert updated.title == "Renamed"
    assert len(chat_store.get(chat.id).messages) == 5

    await chat_service.append_message(chat.id, "assistant", "reply")
    assert [m.content for m in chat_store.get(chat.id).messages] == ["m4", "reply"]


@pytest.mark.asyncio
@pytest.mark.parametrize("max_history", [0, -5])
async def test_history_limit_below_one_is_rejected(
    chat_service: ChatService, chat_store: ChatStore, max_history: int
) -> None:
    with pytest.raises(ConfigurationError, match="maxHistoryMessages must be at least 1"):
        await new_chat(chat_service, max_history_messages=max_history)

    chat = await new_chat(chat_service, max_history_messages=3)
    with pytest.raises(ConfigurationError, match="maxHistoryMessages must be at least 1"):
        await chat_service.update_settings(chat.id, max_history_messages=max_history)

    await chat_service.append_message(chat.id, "user", "still here")
    stored = chat_store.get(chat.id)
    assert stored.max_history_messages == 3
    assert [m.content for m in stored.messages] == ["still here"]


@pytest.mark.asyncio
async def test_update_settings_unknown_chat(chat_service: ChatService) -> None:
    chat = await new_chat(chat_service)

    with pytest.raises(NotFoundError):
        await chat_service.update_settings(chat.id, title="x", organization_id="other-org")


# ============================================================================
# send_message
# ============================================================================


@pytest.mark.asyncio
async def test_send_message_success(chat_service: ChatService, chat_store: ChatStore, provider_call: AsyncMock) -> None:
    chat = await new_chat(chat_service, system_prompt="Be brief.")

    result = await chat_service.send_message(chat.id, "Hi!", organization_id=ORG_ID)

    assert result.user_message.content == "Hi!"
    assert result.assistant_message.role == "assistant"
    assert result.assistant_message.content == "Hello from the model"

    config, model, window = provider_call.await_args.args
    assert config.provider == "openai"
    assert model == "gpt-4o-mini"
    assert [(m.role, m.content) for m in window] == [("system", "Be brief."), ("user", "Hi!")]

    stored = chat_store.get(chat.id)
    assert [m.role for m in stored.messages] == ["system", "user", "assistant"]


@pytest.mark.asyncio
async def test_send_message_provider_sees_trimmed_window(
    chat_service: ChatService, provider_call: AsyncMock
) -> None:
    chat = await new_chat(chat_service, max_history_messages=2)
    await chat_service.append_message(chat.id, "user", "old question")
    await chat_service.append_message(chat.id, "assistant", "old answer")

    await chat_service.send_message(chat.id, "new question")

    window = provider_call.await_args.args[2]
    assert [m.content for m in window] == ["old answer", "new question"]


@pytest.mark.asyncio
async def test_send_message_unknown_chat(chat_service: ChatService, provider_call: AsyncMock) -> None:
    with pytest.raises(NotFoundError, match="Chat not found"):
        await chat_service.send_message("deadbeef", "hi")
    provider_call.assert_not_awaited()


@pytest.mark.asyncio
async def test_send_message_unknown_company_stores_nothing(
    chat_service: ChatService, chat_store: ChatStore, provider_call: AsyncMock
) -> None:
    chat = await new_chat(chat_service, company_id="missing")

    with pytest.raises(NotFoundError, match="AI Company not found"):
        await chat_service.send_message(chat.id, "hi")

    assert chat_store.get(chat.id).messages == []
    provider_call.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [ConnectionError("Connection refused"), RuntimeError("401 invalid api key"), ValueError("bad payload")],
)
async def test_provider_failure_becomes_assistant_message(
    chat_service: ChatService, chat_store: ChatStore, provider_call: AsyncMock, error: Exception
) -> None:
    chat = await new_chat(chat_service)
    provider_call.side_effect = error

    result = await chat_service.send_message(chat.id, "Are you there?")

    assert result.user_message.content == "Are you there?"
    assert result.assistant_message.content == f"{ERROR_PREFIX}{error}"
    stored = chat_store.get(chat.id)
    assert [(m.role, m.content) for m in stored.messages] == [
        ("user", "Are you there?"),
        ("assistant", f"{ERROR_PREFIX}{error}"),
    ]


@pytest.mark.asyncio
async def test_provider_failure_without_message(
    chat_service: ChatService, provider_call: AsyncMock
) -> None:
    chat = await new_chat(chat_service)
    provider_call.side_effect = TimeoutError()

    result = await chat_service.send_message(chat.id, "hello")

    assert result.assistant_message.content == f"{ERROR_PREFIX}AI request failed"


@pytest.mark.asyncio
async def test_custom_provider_without_base_url(chat_store: ChatStore) -> None:
    resolver = StaticResolver({(ORG_ID, COMPANY_ID): ProviderConfig(provider="custom", api_key="key")})
    service = ChatService(chat_store, resolver)
    chat = await new_chat(service)

    result = await service.send_message(chat.id, "ping")

    assert "Custom provider requires baseUrl" in result.assistant_message.content
    assert chat_store.get(chat.id).messages[0].content == "ping"


@pytest.mark.asyncio
async def test_unsupported_provider_does_not_raise(chat_store: ChatStore) -> None:
    resolver = StaticResolver({(ORG_ID, COMPANY_ID): ProviderConfig(provider="mistral", api_key="key")})
    service = ChatService(chat_store, resolver)
    chat = await new_chat(service)

    result = await service.send_message(chat.id, "ping")

    assert result.user_message.content == "ping"
    assert "Unsupported AI provider: mistral" in result.assistant_message.content


@pytest.mark.asyncio
async def test_concurrent_sends_on_one_chat_keep_all_messages(
    chat_service: ChatService, chat_store: ChatStore, provider_call: AsyncMock
) -> None:
    chat = await new_chat(chat_service)

    async def slow_reply(config, model, messages):
        await asyncio.sleep(0.01)
        return ProviderResponse(content=f"reply to {messages[-1].content}", model=model)

    provider_call.side_effect = slow_reply

    await asyncio.gather(*(chat_service.send_message(chat.id, f"q{i}") for i in range(4)))

    stored = chat_store.get(chat.id)
    assert len(stored.messages) == 8
    assert stored.total_tokens == sum(m.token_count for m in stored.messages)
    for user, assistant in zip(stored.messages[::2], stored.messages[1::2]):
        assert user.role == "user"
        assert assistant.content == f"reply to {user.content}"
    assert chat_service._locks == {}


@pytest.mark.asyncio
async def test_chat_locks_are_released_after_use(chat_service: ChatService) -> None:
    chat = await new_chat(chat_service)

    for i in range(50):
        with pytest.raises(NotFoundError):
            await chat_service.send_message(f"missing{i}", "hi")
    await chat_service.send_message(chat.id, "hi")
    await chat_service.append_message(chat.id, "user", "again")
    await chat_service.delete_chat(ORG_ID, chat.id)

    assert chat_service._locks == {}
