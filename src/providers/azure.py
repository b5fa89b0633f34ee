"""Azure OpenAI provider — streams chat completions over the REST API."""

import json
from collections.abc import AsyncGenerator

import httpx
from fastapi import HTTPException

from src.config.settings import get_settings
from src.providers.base import LLMProvider, StreamChunk
from src.providers.params import normalize_params
from src.relay.models import Message, Service


class AzureProvider(LLMProvider):
    """Sends requests to an Azure OpenAI deployment."""

    service = Service.AZURE

    def __init__(self):
        self._client: httpx.AsyncClient | None = None

    @property
    def default_model(self) -> str:
        return get_settings().azure_default_deployment

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(60.0, connect=10.0))
        return self._client

    @staticmethod
    def _build_url(deployment: str) -> str:
        settings = get_settings()
        return (
            f"{settings.azure_endpoint.rstrip('/')}/openai/deployments/{deployment}"
            f"/chat/completions?api-version={settings.azure_api_version}"
        )

    @staticmethod
    def _build_headers() -> dict:
        return {
            "Content-Type": "application/json",
            "api-key": get_settings().azure_api_key,
        }

    @staticmethod
    def _build_body(messages: list[Message], params: dict) -> dict:
        body = normalize_params(params)
        body["messages"] = [m.model_dump() for m in messages]
        body["stream"] = True
        return body

    @staticmethod
    def _extract_text(payload: str) -> str:
        """Concatenate the delta text of every choice in one SSE event."""
        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            event = None
        if not isinstance(event, dict):
            raise HTTPException(status_code=502, detail="Azure OpenAI sent a malformed stream event")
        parts = []
        # Azure sends content-filter events with an empty choices list
        for choice in event.get("choices") or []:
            delta = choice.get("delta") or {}
            parts.append(delta.get("content") or "")
        return "".join(parts)

    async def stream_chat(
        self, messages: list[Message], model: str, params: dict
    ) -> AsyncGenerator[StreamChunk, None]:
        settings = get_settings()
        if not settings.azure_endpoint or not settings.azure_api_key:
            raise HTTPException(status_code=500, detail="Azure endpoint or API key is not configured")

        url = self._build_url(model)
        body = self._build_body(messages, params)

        client = await self._get_client()
        try:
            async with client.stream("POST", url, json=body, headers=self._build_headers()) as response:
                if response.status_code != 200:
                    body_bytes = await response.aread()
                    raise HTTPException(
                        status_code=response.status_code,
                        detail=body_bytes.decode(errors="replace"),
                    )

                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line or not line.startswith("data:"):
                        continue

                    payload = line[len("data:"):].strip()
                    if payload == "[DONE]":
                        yield StreamChunk(text_delta="", is_done=True)
                        return

                    yield StreamChunk(text_delta=self._extract_text(payload))

        except httpx.ConnectError:
            raise HTTPException(status_code=502, detail="Cannot reach Azure OpenAI endpoint")
        except httpx.TimeoutException:
            raise HTTPException(status_code=504, detail="Azure OpenAI request timed out")
        except httpx.HTTPError as e:
            raise HTTPException(status_code=502, detail=f"Azure OpenAI error: {e}")

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
