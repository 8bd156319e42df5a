"""OpenAI chat completions adapter over httpx."""

from typing import Any

import httpx

from mission_control.errors import ProviderError
from mission_control.guardrails.secrets import safe_error
from mission_control.providers.base import ModelResponse


class OpenAIChatProvider:
    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: int = 120,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = max(10, int(timeout_seconds))
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    @staticmethod
    def _coerce_text(value: object) -> str:
        if isinstance(value, str):
            return value
        if isinstance(value, list):
            chunks: list[str] = []
            for item in value:
                if isinstance(item, str):
                    chunks.append(item)
                elif isinstance(item, dict):
                    text = item.get("text")
                    if isinstance(text, str):
                        chunks.append(text)
            return "".join(chunks)
        return ""

    @staticmethod
    def _parse_response(payload: dict[str, Any]) -> ModelResponse:
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ProviderError("model response missing choices")
        first = choices[0]
        if not isinstance(first, dict):
            raise ProviderError("model response choice malformed")
        message = first.get("message")
        if not isinstance(message, dict):
            raise ProviderError("model response message missing")
        content = OpenAIChatProvider._coerce_text(message.get("content"))
        if not content.strip():
            raise ProviderError("model returned an invalid or empty response")
        return ModelResponse(
            text=content,
            model=str(payload.get("model") or ""),
            finish_reason=str(first.get("finish_reason") or ""),
        )

    async def generate(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> ModelResponse:
        body: dict[str, object] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        endpoint = f"{self._base_url}/chat/completions"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(endpoint, json=body, headers=self._headers())
                response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(f"model request failed: {safe_error(exc)}") from None
        if not isinstance(payload, dict):
            raise ProviderError("model response is not an object")
        return self._parse_response(payload)

    async def health_check(self) -> bool:
        endpoint = f"{self._base_url}/models"
        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                response = await client.get(endpoint, headers=self._headers())
            return response.status_code < 400
        except httpx.HTTPError:
            return False
