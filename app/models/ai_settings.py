"""
AI provider and model registry, per-request AI configuration
"""
import os
from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime, timezone
from enum import Enum

from app.utils import config


class ServiceName(str, Enum):
    """Providers a credential can belong to"""
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    OLLAMA = "ollama"


class PlanTier(str, Enum):
    FREE = "free"
    PRO = "pro"


class ApiKey(BaseModel):
    """Caller-supplied credential, lives for one request only"""
    service: ServiceName
    key: str = Field(min_length=1)
    added_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="addedAt")

    model_config = {"populate_by_name": True}

    def __repr__(self) -> str:
        return f"ApiKey(service={self.service.value!r}, key='***')"


class AIConfig(BaseModel):
    """Requested model plus caller keys; the server decides the model that actually runs"""
    model: str = ""
    api_keys: List[ApiKey] = Field(default_factory=list, alias="apiKeys")

    model_config = {"populate_by_name": True}

    @field_validator("model", mode="before")
    @classmethod
    def none_model(cls, v):
        return v or ""

    def key_for(self, service: ServiceName) -> Optional[str]:
        for api_key in self.api_keys:
            if api_key.service == service:
                return api_key.key
        return None


class AIProvider(BaseModel):
    id: ServiceName
    name: str
    api_link: str
    env_key: str
    requires_api_key: bool = True


class ModelFeatures(BaseModel):
    is_free: bool = False
    is_pro: bool = False
    is_recommended: bool = False
    max_tokens: Optional[int] = None
    supports_vision: bool = False
    supports_tools: bool = False


class AIModel(BaseModel):
    id: str
    name: str
    provider: ServiceName
    features: ModelFeatures = Field(default_factory=ModelFeatures)
    requires_pro: bool = False


PROVIDERS: Dict[ServiceName, AIProvider] = {
    ServiceName.OPENAI: AIProvider(
        id=ServiceName.OPENAI,
        name="OpenAI",
        api_link="https://platform.openai.com/api-keys",
        env_key="OPENAI_API_KEY",
    ),
    ServiceName.OPENROUTER: AIProvider(
        id=ServiceName.OPENROUTER,
        name="OpenRouter",
        api_link="https://openrouter.ai/keys",
        env_key="OPENROUTER_API_KEY",
    ),
    ServiceName.OLLAMA: AIProvider(
        id=ServiceName.OLLAMA,
        name="Ollama",
        api_link="https://ollama.com/download",
        env_key="OLLAMA_BASE_URL",
        requires_api_key=False,
    ),
}


AI_MODELS: List[AIModel] = [
    AIModel(
        id="gpt-4o",
        name="Pro: Newest Model",
        provider=ServiceName.OPENAI,
        features=ModelFeatures(is_pro=True, is_recommended=True, max_tokens=128000,
                               supports_vision=True, supports_tools=True),
        requires_pro=True,
    ),
    AIModel(
        id="gpt-4.1-nano",
        name="Free: Older Model",
        provider=ServiceName.OPENAI,
        features=ModelFeatures(is_free=True, max_tokens=128000, supports_tools=True),
    ),
]


OLLAMA_PREFIX = "ollama/"


def model_designations() -> Dict[str, str]:
    """Which model serves which use case; follows PREMIUM_MODEL / FREE_MODEL"""
    return {
        "fast_cheap": config.FREE_MODEL,
        "frontier": config.PREMIUM_MODEL,
        "default_pro": config.PREMIUM_MODEL,
        "default_free": config.FREE_MODEL,
    }


def get_model_by_id(model_id: str) -> Optional[AIModel]:
    return next((m for m in AI_MODELS if m.id == model_id), None)


def get_provider_for_model(model_id: str) -> ServiceName:
    model = get_model_by_id(model_id)
    if model:
        return model.provider
    if model_id.startswith(OLLAMA_PREFIX):
        return ServiceName.OLLAMA
    if "/" in model_id:
        return ServiceName.OPENROUTER
    return ServiceName.OPENAI


def is_free_model(model_id: str) -> bool:
    model = get_model_by_id(model_id)
    if model:
        return model.features.is_free
    return model_id == config.FREE_MODEL


def get_default_model(is_pro: bool) -> str:
    return config.PREMIUM_MODEL if is_pro else config.FREE_MODEL


def provider_enabled_in_env(service: ServiceName) -> bool:
    provider = PROVIDERS.get(service)
    return bool(provider and os.getenv(provider.env_key))


def is_model_available(model_id: str, is_pro: bool, api_keys: List[ApiKey]) -> bool:
    if is_pro:
        return True

    model = get_model_by_id(model_id)
    if not model:
        return False
    if model.features.is_free:
        return True
    return any(k.service == model.provider for k in api_keys)


def get_selectable_models(is_pro: bool, api_keys: List[ApiKey]) -> List[AIModel]:
    return [
        m for m in AI_MODELS
        if provider_enabled_in_env(m.provider) and is_model_available(m.id, is_pro, api_keys)
    ]
