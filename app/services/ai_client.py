"""
AI client factory: picks the model that actually runs, picks a credential for
it and returns a handle. Building a handle never touches the network; the
orchestrator invokes it later.
"""
import asyncio
from typing import Any, Dict, Optional, Protocol

import requests
from openai import AsyncOpenAI, OpenAIError

from app.models.ai_settings import (
    AIConfig, OLLAMA_PREFIX, PlanTier, ServiceName, get_provider_for_model, is_free_model,
)
from app.utils import config
from app.utils.exceptions import GenerationFailure, MissingCredential
from app.utils.logging_config import get_logger
from app.utils.utils import ollama_generate, safe_json

logger = get_logger(__name__)


class ModelHandle(Protocol):
    model_name: str
    service: ServiceName

    async def generate_object(self, system: str, prompt: str, temperature: float = 0.2) -> Dict[str, Any]: ...


def _parse_object(content: Optional[str], model_name: str) -> Dict[str, Any]:
    data = safe_json(content or "", fallback=None)
    if not isinstance(data, dict):
        raise GenerationFailure(
            "The AI model returned content that is not a JSON object",
            model_name=model_name,
            details={"preview": (content or "")[:200]},
        )
    return data


class OpenAIModelHandle:
    """OpenAI and OpenAI-compatible endpoints (OpenRouter) through the official SDK"""

    def __init__(self, model: str, api_key: str, base_url: Optional[str] = None,
                 service: ServiceName = ServiceName.OPENAI, key_source: str = "server"):
        self.model_name = model
        self.service = service
        self.key_source = key_source
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=config.AI_TIMEOUT_SECONDS,
            max_retries=config.AI_MAX_RETRIES,
        )

    async def generate_object(self, system: str, prompt: str, temperature: float = 0.2) -> Dict[str, Any]:
        try:
            completion = await self._client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            raise GenerationFailure(f"AI provider error: {e}", model_name=self.model_name, cause=e) from e

        if not completion.choices:
            raise GenerationFailure("The AI provider returned no choices", model_name=self.model_name)
        return _parse_object(completion.choices[0].message.content, self.model_name)


class OllamaModelHandle:
    """Self-hosted models served by Ollama"""

    def __init__(self, model: str):
        self.model_name = model
        self.service = ServiceName.OLLAMA
        self.key_source = "none"

    async def generate_object(self, system: str, prompt: str, temperature: float = 0.2) -> Dict[str, Any]:
        try:
            content = await asyncio.to_thread(
                ollama_generate, prompt, self.model_name, system, temperature, True
            )
        except requests.RequestException as e:
            raise GenerationFailure(f"Ollama request failed: {e}", model_name=self.model_name, cause=e) from e
        return _parse_object(content, self.model_name)


def resolve_effective_model(requested_model: Optional[str], plan: PlanTier) -> str:
    """
    Server-side model choice. The requested model is only logged: pro callers
    always get the premium model and free callers the free one.
    """
    effective = config.PREMIUM_MODEL if plan == PlanTier.PRO else config.FREE_MODEL
    if requested_model and requested_model != effective:
        logger.info(f"Requested model '{requested_model}' overridden by plan '{plan.value}' -> '{effective}'")
    return effective


def _server_key(service: ServiceName) -> Optional[str]:
    if service == ServiceName.OPENAI:
        return config.OPENAI_API_KEY
    if service == ServiceName.OPENROUTER:
        return config.OPENROUTER_API_KEY
    return None


def _build_handle(model_id: str, service: ServiceName, api_key: Optional[str], key_source: str) -> ModelHandle:
    if service == ServiceName.OLLAMA:
        return OllamaModelHandle(model_id[len(OLLAMA_PREFIX):] if model_id.startswith(OLLAMA_PREFIX) else model_id)
    if service == ServiceName.OPENROUTER:
        return OpenAIModelHandle(model_id, api_key, base_url=config.OPENROUTER_BASE_URL,
                                 service=service, key_source=key_source)
    return OpenAIModelHandle(model_id, api_key, base_url=config.OPENAI_BASE_URL,
                             service=service, key_source=key_source)


def resolve_client(ai_config: AIConfig, is_pro: bool = False, force_premium: bool = False,
                   model_override: Optional[str] = None) -> ModelHandle:
    """
    Pick the effective model and a credential for it.

    Entitled callers (pro plan, or force_premium) may use the server-held key
    and fall back to their own key. Everyone else needs their own key for the
    provider, except on free-tier models where the server key is allowed.
    `model_override` is a server-side choice (e.g. the public scorer model),
    never a caller one.
    """
    entitled = is_pro or force_premium
    plan = PlanTier.PRO if entitled else PlanTier.FREE
    model_id = model_override or resolve_effective_model(ai_config.model, plan)
    service = get_provider_for_model(model_id)

    if service == ServiceName.OLLAMA:
        return _build_handle(model_id, service, None, "none")

    caller_key = ai_config.key_for(service)
    server_key = _server_key(service)

    if entitled and server_key:
        api_key, source = server_key, "server"
    elif caller_key:
        api_key, source = caller_key, "caller"
    elif server_key and is_free_model(model_id):
        api_key, source = server_key, "server"
    else:
        raise MissingCredential(service=service.value, model_name=model_id)

    logger.debug(f"Resolved AI client: model={model_id}, service={service.value}, key_source={source}")
    return _build_handle(model_id, service, api_key, source)
