"""Adapters that normalize third-party chat-completion APIs into one contract."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from anthropic import AsyncAnthropic
from google import genai
from google.genai import types
from openai import AsyncOpenAI

from app.core.config import settings
from app.core.exceptions import (
    ChatServiceError,
    ConfigurationError,
    ProviderError,
    UnsupportedProviderError,
)

from .models import AIProvider, ChatMessage, ProviderConfig, ProviderResponse

logger = logging.getLogger(__name__)


def format_messages(messages: Sequence[ChatMessage]) -> List[Dict[str, str]]:
    """Drop everything but role and content."""
    return [{"role": m.role, "content": m.content} for m in messages]


def _split_system(messages: Sequence[ChatMessage]):
    system = next((m for m in messages if m.role == "system"), None)
    others = [m for m in messages if m.role != "system"]
    return system, others


class ProviderAdapter:
    """Base adapter interface."""

    provider: AIProvider

    async def send_message(
        self,
        config: ProviderConfig,
        model: str,
        messages: Sequence[ChatMessage],
    ) -> ProviderResponse:
        raise NotImplementedError


class OpenAIAdapter(ProviderAdapter):
    """OpenAI chat completions."""

    provider = AIProvider.OPENAI

    def _build_client(self, config: ProviderConfig) -> AsyncOpenAI:
        client_kwargs: Dict[str, Any] = {"api_key": config.api_key}
        if config.base_url:
            client_kwargs["base_url"] = config.base_url
        return AsyncOpenAI(**client_kwargs)

    async def send_message(
        self,
        config: ProviderConfig,
        model: str,
        messages: Sequence[ChatMessage],
    ) -> ProviderResponse:
        async with self._build_client(config) as client:
            response = await client.chat.completions.create(
                model=model,
                messages=format_messages(messages),
            )

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""

        usage = response.usage
        return ProviderResponse(
            content=content,
            model=response.model or model,
            prompt_tokens=usage.prompt_tokens if usage else None,
            completion_tokens=usage.completion_tokens if usage else None,
            total_tokens=usage.total_tokens if usage else None,
        )


class CustomAdapter(OpenAIAdapter):
    """Any OpenAI-compatible endpoint; the base URL is mandatory."""

    provider = AIProvider.CUSTOM

    def _build_client(self, config: ProviderConfig) -> AsyncOpenAI:
        if not config.base_url:
            raise ConfigurationError("Custom provider requires baseUrl")
        return AsyncOpenAI(api_key=config.api_key, base_url=config.base_url)


class AnthropicAdapter(ProviderAdapter):
    """Anthropic messages API. The system prompt travels as a top-level field."""

    provider = AIProvider.ANTHROPIC

    def __init__(self, max_tokens: Optional[int] = None):
        self.max_tokens = max_tokens or settings.ANTHROPIC_MAX_TOKENS

    async def send_message(
        self,
        config: ProviderConfig,
        model: str,
        messages: Sequence[ChatMessage],
    ) -> ProviderResponse:
        system, others = _split_system(messages)

        request: Dict[str, Any] = {
            "model": model,
            "max_tokens": self.max_tokens,
            "messages": format_messages(others),
        }
        if system is not None and system.content:
            request["system"] = system.content

        async with AsyncAnthropic(api_key=config.api_key) as client:
            response = await client.messages.create(**request)

        text_block = next((block for block in response.content if block.type == "text"), None)
        usage = response.usage
        prompt_tokens = usage.input_tokens if usage else None
        completion_tokens = usage.output_tokens if usage else None
        return ProviderResponse(
            content=text_block.text if text_block is not None else "",
            model=response.model or model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=(prompt_tokens or 0) + (completion_tokens or 0) if usage else None,
        )


class GeminiAdapter(ProviderAdapter):
    """Google Gemini chat sessions via the google-genai SDK."""

    provider = AIProvider.GEMINI

    async def send_message(
        self,
        config: ProviderConfig,
        model: str,
        messages: Sequence[ChatMessage],
    ) -> ProviderResponse:
        client = genai.Client(api_key=config.api_key)
        system, others = _split_system(messages)

        # Everything but the final turn is replayed as history
        history = [
            types.Content(
                role="user" if m.role == "user" else "model",
                parts=[types.Part(text=m.content)],
            )
            for m in others[:-1]
        ]
        chat_config = None
        if system is not None and system.content:
            chat_config = types.GenerateContentConfig(system_instruction=system.content)

        last_message = others[-1].content if others else ""
        try:
            chat = client.aio.chats.create(model=model, config=chat_config, history=history)
            response = await chat.send_message(last_message)
        finally:
            await client.aio.aclose()

        usage = response.usage_metadata
        return ProviderResponse(
            content=response.text or "",
            model=model,
            prompt_tokens=usage.prompt_token_count if usage else None,
            completion_tokens=usage.candidates_token_count if usage else None,
            total_tokens=usage.total_token_count if usage else None,
        )


ADAPTERS: Dict[AIProvider, ProviderAdapter] = {
    AIProvider.OPENAI: OpenAIAdapter(),
    AIProvider.ANTHROPIC: AnthropicAdapter(),
    AIProvider.GEMINI: GeminiAdapter(),
    AIProvider.CUSTOM: CustomAdapter(),
}


def get_adapter(provider: str) -> ProviderAdapter:
    try:
        return ADAPTERS[AIProvider(provider)]
    except ValueError:
        raise UnsupportedProviderError(provider) from None


async def send_message(
    config: ProviderConfig,
    model: str,
    messages: Sequence[ChatMessage],
) -> ProviderResponse:
    """Send a conversation window to the configured provider and normalize the reply."""
    adapter = get_adapter(config.provider)
    logger.info(f"Calling {adapter.provider.value} model {model} with {len(messages)} messages")
    try:
        return await adapter.send_message(config, model, messages)
    except ChatServiceError:
        raise
    except Exception as exc:
        logger.error(f"{adapter.provider.value} request failed: {exc!r}")
        if not str(exc):
            raise ProviderError("AI request failed") from exc
        raise
