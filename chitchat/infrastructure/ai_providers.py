# chitchat/infrastructure/ai_providers.py
import logging
from abc import ABC, abstractmethod

import httpx

from chitchat.domain.exceptions import (
    InvalidArgumentError,
    NotFoundError,
    ProviderError,
)

TEST_PROMPT = "Hello, this is a test message."


def build_chat_prompt(user_message: str, conversation_context: str | None = None) -> str:
    parts = [
        "You are a helpful and friendly AI assistant in a chat application. ",
        "Please respond in a conversational manner, being helpful and engaging. ",
        "Keep responses concise but informative. ",
    ]
    if conversation_context and conversation_context.strip():
        parts.append(f"Previous conversation context: {conversation_context} ")
    parts.append(f"User's message: {user_message}")
    return "".join(parts)


class AIProvider(ABC):
    provider_name: str
    supported_models: tuple[str, ...]

    def __init__(self, http_client: httpx.AsyncClient, logger: logging.Logger):
        self.http_client = http_client
        self.logger = logger

    @abstractmethod
    async def generate(self, prompt: str, model: str, api_key: str) -> str:
        pass

    async def test_connection(self, api_key: str, model: str | None = None) -> bool:
        try:
            text = await self.generate(
                TEST_PROMPT, model or self.supported_models[0], api_key
            )
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
            self.logger.warning(f"{self.provider_name} connection test failed: {e!s}")
            return False
        return bool(text.strip())


class ChatCompletionsProvider(AIProvider):
    """Providers speaking the OpenAI ``/chat/completions`` dialect."""

    base_url: str

    async def generate(self, prompt: str, model: str, api_key: str) -> str:
        response = await self.http_client.post(
            f"{self.base_url}/chat/completions",
            headers={"Authorization": f"Bearer {api_key}"},
            json={"model": model, "messages": [{"role": "user", "content": prompt}]},
        )
        response.raise_for_status()
        data = response.json()
        return data["choices"][0]["message"]["content"].strip()


class OpenAIProvider(ChatCompletionsProvider):
    provider_name = "openai"
    supported_models = ("gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-3.5-turbo")
    base_url = "https://api.openai.com/v1"


class MistralProvider(ChatCompletionsProvider):
    provider_name = "mistral"
    supported_models = (
        "mistral-large-latest",
        "mistral-medium-latest",
        "mistral-small-latest",
    )
    base_url = "https://api.mistral.ai/v1"


class GeminiProvider(AIProvider):
    provider_name = "gemini"
    supported_models = ("gemini-1.5-flash", "gemini-1.5-pro")
    base_url = "https://generativelanguage.googleapis.com/v1beta"

    async def generate(self, prompt: str, model: str, api_key: str) -> str:
        response = await self.http_client.post(
            f"{self.base_url}/models/{model}:generateContent",
            params={"key": api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
        )
        response.raise_for_status()
        data = response.json()
        parts = data["candidates"][0]["content"]["parts"]
        return "".join(part.get("text", "") for part in parts).strip()


class AIProviderRegistry:
    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._providers: dict[str, AIProvider] = {}

    def register(self, provider: AIProvider) -> None:
        self._providers[provider.provider_name] = provider

    def get(self, name: str) -> AIProvider:
        provider = self._providers.get(name)
        if provider is None:
            raise NotFoundError(f"Unsupported AI provider: {name}")
        return provider

    def providers(self) -> list[AIProvider]:
        return list(self._providers.values())

    def resolve_model(self, provider: AIProvider, model: str | None) -> str:
        if model is None:
            return provider.supported_models[0]
        if model not in provider.supported_models:
            raise InvalidArgumentError(
                f"Model {model!r} is not supported by {provider.provider_name}"
            )
        return model

    async def generate(
        self,
        name: str,
        prompt: str,
        api_key: str,
        model: str | None = None,
        context: str | None = None,
    ) -> tuple[str, str]:
        provider = self.get(name)
        model = self.resolve_model(provider, model)
        if not prompt.strip():
            raise InvalidArgumentError("Prompt cannot be empty")
        try:
            text = await provider.generate(
                build_chat_prompt(prompt, context), model, api_key
            )
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
            self.logger.error(f"{name} failed to generate a response: {e!s}")
            raise ProviderError(f"{name} failed to generate a response") from e
        return model, text

    async def test_connection(
        self, name: str, api_key: str, model: str | None = None
    ) -> bool:
        provider = self.get(name)
        return await provider.test_connection(api_key, self.resolve_model(provider, model))


def create_provider_registry(
    http_client: httpx.AsyncClient, logger: logging.Logger
) -> AIProviderRegistry:
    registry = AIProviderRegistry(logger)
    for provider_cls in (GeminiProvider, OpenAIProvider, MistralProvider):
        registry.register(provider_cls(http_client, logger))
    return registry
