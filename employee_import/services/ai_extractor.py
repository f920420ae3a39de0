"""
AI Structured Extraction Client
===============================

Sends extracted document text to an OpenAI-compatible chat-completions API
and converts the JSON array it returns into validated employee drafts.

Failure policy:
    - Non-2xx responses, transport errors and timeouts -> AIExtractionError
    - Unparseable or non-array output -> AIExtractionError
    - No partial results are returned on failure
    - No automatic retries
"""

import json
import re
import time
from typing import Any

import httpx

from employee_import.api.metrics import record_ai_request
from employee_import.config.settings import Settings, get_settings
from employee_import.schemas.domain import EmployeeRecordDraft, ExtractedRecord
from employee_import.services.normalizer import normalize_record
from employee_import.services.prompts import build_messages
from employee_import.utils.errors import AIExtractionError
from employee_import.utils.logger import get_logger

logger = get_logger(__name__)

# Greedy: first "[" through last "]"
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def parse_json_lenient(text: str) -> list[Any]:
    """
    Parse a model response as a JSON array.

    Tries the whole text first, then the bracketed substring, so prose-wrapped
    output such as ``Sure! Here is the data: [...]`` still parses.

    Raises:
        AIExtractionError: If no JSON array can be recovered
    """
    content = text.strip()
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        match = _ARRAY_RE.search(content)
        if not match:
            raise AIExtractionError(
                message="Could not parse AI response as JSON",
                details={"response_preview": content[:200]},
            )
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise AIExtractionError(
                message="Could not parse AI response as JSON",
                details={"response_preview": content[:200], "error": str(e)},
            ) from e

    if not isinstance(data, list):
        raise AIExtractionError(
            message="AI response is not an array",
            details={"type": type(data).__name__},
        )
    return data


class AIExtractionClient:
    """
    Chat-completions client for employee extraction.

    Usage:
        client = AIExtractionClient()
        drafts = await client.extract_employees(document_text)
        await client.close()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._settings.ai_request_timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def complete(self, text: str) -> str:
        """
        Run one completion and return the message content.

        Raises:
            AIExtractionError: On transport failure or non-2xx status
        """
        if not self._settings.openai_api_key:
            raise AIExtractionError(
                message="AI extraction is not configured",
                details={"hint": "Set OPENAI_API_KEY"},
            )

        url = f"{self._settings.openai_base_url.rstrip('/')}/chat/completions"
        payload = {
            "model": self._settings.ai_model,
            "messages": build_messages(text),
            "max_tokens": self._settings.ai_max_tokens,
            "temperature": self._settings.ai_temperature,
        }
        headers = {
            "Authorization": f"Bearer {self._settings.openai_api_key}",
            "Content-Type": "application/json",
        }

        start = time.perf_counter()
        try:
            response = await self._get_client().post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            record_ai_request("transport_error", time.perf_counter() - start)
            logger.error("AI request failed", error=str(e), error_type=type(e).__name__)
            raise AIExtractionError(
                message=f"Failed to extract employee data with AI: {e}",
                details={"error_type": type(e).__name__},
            ) from e

        duration = time.perf_counter() - start
        if not response.is_success:
            record_ai_request("http_error", duration)
            logger.error("AI API returned error status", status_code=response.status_code)
            raise AIExtractionError(
                message=f"AI API error: {response.status_code}",
                details={"status_code": response.status_code},
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            record_ai_request("bad_response", duration)
            raise AIExtractionError(
                message="AI API returned an unexpected response shape",
                details={"error": str(e)},
            ) from e

        record_ai_request("success", duration)
        return content or ""

    async def extract_employees(self, text: str) -> list[EmployeeRecordDraft]:
        """
        Extract employee drafts from document text.

        Whitespace-only text yields an empty list without calling the API.

        Raises:
            AIExtractionError: If the API call or response parsing fails
        """
        if not text.strip():
            logger.info("Skipping AI extraction for empty text")
            return []

        content = await self.complete(text)
        items = parse_json_lenient(content)

        drafts = [
            normalize_record(ExtractedRecord.from_loose(item), strict=False)
            for item in items
            if isinstance(item, dict)
        ]

        logger.info(
            "AI extraction completed",
            items_returned=len(items),
            employees=len(drafts),
            invalid=sum(1 for d in drafts if not d.is_valid),
        )
        return drafts
