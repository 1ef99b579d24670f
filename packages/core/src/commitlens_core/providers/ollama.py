from __future__ import annotations

from collections.abc import Sequence

import httpx

from commitlens_core.providers.base import BaseProvider

DEFAULT_OLLAMA_URL = "http://localhost:11434"


class OllamaProvider(BaseProvider):
    """Talks to a local Ollama server through its /api/generate endpoint."""

    MODEL = "refactorscore"
    TEMPERATURE = 0.2

    def __init__(
        self,
        base_url: str = DEFAULT_OLLAMA_URL,
        model_name: str | None = None,
        timeout: float = 120.0,
        sentinel_tokens: Sequence[str] | None = None,
        client: httpx.Client | None = None,
    ):
        super().__init__(model_name, sentinel_tokens)
        self.base_url = base_url.rstrip("/")
        self.client = client if client is not None else httpx.Client(timeout=timeout)

    def _call_api(self, system_prompt: str, user_prompt: str, model: str) -> str:
        payload = {
            "model": model,
            "prompt": user_prompt,
            "stream": False,
            "options": {"temperature": self.TEMPERATURE},
        }
        if system_prompt:
            payload["system"] = system_prompt
        response = self.client.post(f"{self.base_url}/api/generate", json=payload)
        response.raise_for_status()
        return response.json().get("response", "")
