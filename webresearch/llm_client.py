"""Generation-model capability and its OpenRouter (OpenAI-compatible) adapter."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from webresearch.config import Settings, settings as default_settings
from webresearch.errors import ModelCallError
from webresearch.services.logger import log_llm_call


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class ModelResponse:
    content: str
    usage: Usage = field(default_factory=Usage)


class ModelClient(Protocol):
    """Anything that can turn a prompt into text."""

    async def complete(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        system: str | None = None,
        caller: str = "pipeline",
    ) -> ModelResponse: ...


class OpenRouterModelClient:
    def __init__(self, openai_client: Any, model: str):
        self._client = openai_client
        self.model = model

    @staticmethod
    def _temperature_for_model(model: str, requested: float) -> float:
        # Some OpenAI GPT-5-compatible gateways reject anything but temperature=1.
        lowered = (model or "").lower()
        if "gpt-5" in lowered:
            return 1
        return requested

    @staticmethod
    def _to_openai_messages(prompt: str, system: str | None) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def complete(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        system: str | None = None,
        caller: str = "pipeline",
    ) -> ModelResponse:
        started = time.monotonic()
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=self._to_openai_messages(prompt, system),
                max_tokens=max_tokens,
                temperature=self._temperature_for_model(self.model, temperature),
            )
        except Exception as exc:
            log_llm_call(
                model=self.model,
                caller=caller,
                duration_ms=int((time.monotonic() - started) * 1000),
                status="error",
                error=str(exc),
            )
            raise ModelCallError(f"Model call failed: {exc}") from exc

        choices = getattr(response, "choices", None) or []
        text = getattr(choices[0].message, "content", None) if choices else None
        usage = getattr(response, "usage", None)
        mapped_usage = Usage(
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        )
        log_llm_call(
            model=self.model,
            caller=caller,
            input_tokens=mapped_usage.input_tokens,
            output_tokens=mapped_usage.output_tokens,
            duration_ms=int((time.monotonic() - started) * 1000),
            status="success" if text else "empty",
        )
        if not text:
            raise ModelCallError("Model returned no content")
        return ModelResponse(content=text, usage=mapped_usage)


def get_model(config: Settings | None = None) -> str:
    """Get the active model id."""
    return (config or default_settings).model_name


def get_client(config: Settings | None = None) -> OpenRouterModelClient:
    """Build a model client via the OpenAI-compatible SDK.

    Construct once at startup and pass it into the pipeline.
    """
    from openai import AsyncOpenAI

    config = config or default_settings
    base_url = config.openrouter_base_url.strip() or "https://openrouter.ai/api/v1"
    openai_client = AsyncOpenAI(
        api_key=config.openrouter_api_key or "missing-key",
        base_url=base_url,
        timeout=config.model_timeout_seconds,
    )
    return OpenRouterModelClient(openai_client, get_model(config))
