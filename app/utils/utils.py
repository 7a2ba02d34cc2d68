import json
import requests

from app.utils import config


def ollama_generate(prompt: str, model: str, system: str = None, temperature: float = 0.2,
                    json_mode: bool = True, timeout: float = None) -> str:
    url = f"{config.OLLAMA_BASE_URL}/api/generate"
    payload = {
        "model": model,
        "prompt": prompt,
        "options": {"temperature": temperature},
        "stream": False  # important
    }
    if system:
        payload["system"] = system
    if json_mode:
        payload["format"] = "json"

    resp = requests.post(url, json=payload, timeout=timeout or config.AI_TIMEOUT_SECONDS)
    resp.raise_for_status()
    return resp.json().get("response", "") or ""


def safe_json(s: str, fallback=None):
    try:
        # heuristics to find JSON inside
        start = s.find("{")
        end = s.rfind("}")
        if start >= 0 and end >= 0:
            return json.loads(s[start:end+1])
        return fallback
    except (ValueError, AttributeError):
        return fallback
