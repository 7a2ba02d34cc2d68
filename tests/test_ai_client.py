from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import requests
from openai import OpenAIError

from app.models.ai_settings import AIConfig, ApiKey, PlanTier, ServiceName
from app.services.ai_client import (
    OllamaModelHandle, OpenAIModelHandle, resolve_client, resolve_effective_model,
)
from app.utils import config
from app.utils.exceptions import GenerationFailure, MissingCredential


@pytest.fixture
def server_keys(monkeypatch):
    monkeypatch.setattr(config, "OPENAI_API_KEY", "sk-server")
    monkeypatch.setattr(config, "OPENROUTER_API_KEY", None)
    monkeypatch.setattr(config, "PREMIUM_MODEL", "gpt-4o")
    monkeypatch.setattr(config, "FREE_MODEL", "gpt-4.1-nano")


@pytest.fixture
def no_server_keys(monkeypatch):
    monkeypatch.setattr(config, "OPENAI_API_KEY", None)
    monkeypatch.setattr(config, "OPENROUTER_API_KEY", None)
    monkeypatch.setattr(config, "PREMIUM_MODEL", "gpt-4o")
    monkeypatch.setattr(config, "FREE_MODEL", "gpt-4.1-nano")


def _caller_config(model="", **keys):
    return AIConfig(model=model, api_keys=[ApiKey(service=s, key=k) for s, k in keys.items()])


class TestModelGating:

    def test_free_plan_never_gets_premium_model(self, server_keys):
        assert resolve_effective_model("gpt-4o", PlanTier.FREE) == "gpt-4.1-nano"

    def test_pro_plan_gets_premium_model(self, server_keys):
        assert resolve_effective_model("gpt-4.1-nano", PlanTier.PRO) == "gpt-4o"

    def test_free_caller_with_own_key_still_gets_free_model(self, server_keys):
        handle = resolve_client(_caller_config("gpt-4o", openai="sk-caller"), is_pro=False)

        assert handle.model_name == "gpt-4.1-nano"
        assert handle.key_source == "caller"

    def test_pro_caller_uses_server_key(self, server_keys):
        handle = resolve_client(_caller_config("gpt-4.1-nano", openai="sk-caller"), is_pro=True)

        assert handle.model_name == "gpt-4o"
        assert handle.key_source == "server"

    def test_force_premium_acts_as_pro(self, server_keys):
        handle = resolve_client(AIConfig(), is_pro=False, force_premium=True)

        assert handle.model_name == "gpt-4o"
        assert handle.key_source == "server"


class TestCredentials:

    def test_free_model_may_use_server_key(self, server_keys):
        handle = resolve_client(AIConfig(), is_pro=False)

        assert isinstance(handle, OpenAIModelHandle)
        assert handle.key_source == "server"
        assert handle.service == ServiceName.OPENAI

    def test_missing_credential_without_any_key(self, no_server_keys):
        with pytest.raises(MissingCredential) as exc_info:
            resolve_client(AIConfig(), is_pro=False)

        assert exc_info.value.details["service"] == "openai"
        assert "hint" in exc_info.value.details

    def test_pro_falls_back_to_caller_key(self, no_server_keys):
        handle = resolve_client(_caller_config(openai="sk-caller"), is_pro=True)

        assert handle.key_source == "caller"

    def test_pro_without_any_key_fails(self, no_server_keys):
        with pytest.raises(MissingCredential):
            resolve_client(AIConfig(), is_pro=True)

    def test_openrouter_override_needs_openrouter_key(self, server_keys):
        with pytest.raises(MissingCredential) as exc_info:
            resolve_client(AIConfig(), model_override="meta-llama/llama-3.1-8b-instruct")
        assert exc_info.value.details["service"] == "openrouter"

        handle = resolve_client(_caller_config(openrouter="or-caller"),
                                model_override="meta-llama/llama-3.1-8b-instruct")
        assert handle.service == ServiceName.OPENROUTER
        assert handle.key_source == "caller"

    def test_ollama_override_needs_no_key(self, no_server_keys):
        handle = resolve_client(AIConfig(), model_override="ollama/llama3")

        assert isinstance(handle, OllamaModelHandle)
        assert handle.model_name == "llama3"

    def test_api_key_repr_is_masked(self):
        assert "sk-secret" not in repr(ApiKey(service=ServiceName.OPENAI, key="sk-secret"))


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestHandles:

    @pytest.mark.asyncio
    async def test_openai_handle_parses_json_object(self):
        handle = OpenAIModelHandle("gpt-4.1-nano", "sk-test")
        create = AsyncMock(return_value=_completion('{"content": {"company": "Acme"}}'))

        with patch.object(handle._client.chat.completions, "create", create):
            result = await handle.generate_object("system", "prompt", temperature=0.7)

        assert result == {"content": {"company": "Acme"}}
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "gpt-4.1-nano"
        assert kwargs["temperature"] == 0.7
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}

    @pytest.mark.asyncio
    async def test_openai_handle_rejects_non_json(self):
        handle = OpenAIModelHandle("gpt-4.1-nano", "sk-test")

        with patch.object(handle._client.chat.completions, "create",
                          AsyncMock(return_value=_completion("I cannot do that"))):
            with pytest.raises(GenerationFailure) as exc_info:
                await handle.generate_object("system", "prompt")

        assert exc_info.value.details["model_name"] == "gpt-4.1-nano"

    @pytest.mark.asyncio
    async def test_openai_provider_error_becomes_generation_failure(self):
        handle = OpenAIModelHandle("gpt-4o", "sk-test")

        with patch.object(handle._client.chat.completions, "create",
                          AsyncMock(side_effect=OpenAIError("upstream exploded"))):
            with pytest.raises(GenerationFailure) as exc_info:
                await handle.generate_object("system", "prompt")

        assert "upstream exploded" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_ollama_handle(self):
        handle = OllamaModelHandle("llama3")

        with patch("app.services.ai_client.ollama_generate", MagicMock(return_value='{"ok": true}')) as gen:
            result = await handle.generate_object("sys", "prompt", temperature=0.2)

        assert result == {"ok": True}
        assert gen.call_args.args[:3] == ("prompt", "llama3", "sys")

    @pytest.mark.asyncio
    async def test_ollama_connection_error(self):
        handle = OllamaModelHandle("llama3")

        with patch("app.services.ai_client.ollama_generate",
                   MagicMock(side_effect=requests.ConnectionError("refused"))):
            with pytest.raises(GenerationFailure):
                await handle.generate_object("sys", "prompt")
