from __future__ import annotations

import json
from typing import Protocol, runtime_checkable

import httpx
from loguru import logger

from responses_chat.errors import ResponsesClientError, ResponsesHTTPError, ResponsesProtocolError

RESPONSES_PATH = "/openai/v1/responses"


@runtime_checkable
class ResponsesProvider(Protocol):
    async def create_response(
        self,
        *,
        base_url: str,
        api_key: str,
        model: str,
        input_text: str,
        temperature: float,
    ) -> dict:
        """Submit one prompt and return the decoded JSON reply.

        Raises ResponsesClientError on any transport or protocol failure.
        """
        ...


def responses_url(base_url: str) -> str:
    return base_url.rstrip("/") + RESPONSES_PATH


class ResponsesClient:
    """Single round-trip client for the responses endpoint. No retries."""

    def __init__(self, *, timeout: float = 60.0, client: httpx.AsyncClient | None = None):
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def create_response(
        self,
        *,
        base_url: str,
        api_key: str,
        model: str,
        input_text: str,
        temperature: float,
    ) -> dict:
        url = responses_url(base_url)
        body = {"model": model, "input": input_text, "temperature": float(temperature)}

        logger.debug(f"API request: model={model}, input_chars={len(input_text):,}, url={url}")
        try:
            resp = await self._client.post(
                url,
                json=body,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {api_key}",
                },
            )
        except httpx.HTTPError as ex:
            raise ResponsesClientError(f"Request to {url} failed: {ex}") from ex

        if not resp.is_success:
            raise ResponsesHTTPError(resp.status_code, resp.text or resp.reason_phrase)

        try:
            payload = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as ex:
            raise ResponsesProtocolError(f"Response is not valid JSON: {ex}") from ex
        if not isinstance(payload, dict):
            raise ResponsesProtocolError(f"Expected a JSON object, got {type(payload).__name__}")

        logger.debug(f"API response: status={resp.status_code}, keys={sorted(payload)}")
        return payload

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
