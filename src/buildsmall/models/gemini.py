"""Gemini client that speaks the ``generateContent`` REST API."""

from __future__ import annotations

import json
import logging
import os
import urllib.parse
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError
from pydantic.type_adapter import TypeAdapter

from .llm_client import LLMClient, LLMRequest, LLMResponseFormatError, LLMTransportError

__all__ = ["GeminiClient"]

LOGGER = logging.getLogger(__name__)

Transport = Callable[[str, Dict[str, Any]], str]


@dataclass(slots=True)
class _Part:
    text: str = ""


@dataclass(slots=True)
class _Content:
    parts: List[_Part] = field(default_factory=list)
    role: Optional[str] = None


@dataclass(slots=True)
class _Candidate:
    content: Optional[_Content] = None
    finishReason: Optional[str] = None


@dataclass(slots=True)
class _GenerateContentResponse:
    candidates: List[_Candidate] = field(default_factory=list)


_RESPONSE_ADAPTER = TypeAdapter(_GenerateContentResponse)


class GeminiClient(LLMClient):
    """Thin adapter around the Gemini ``generateContent`` endpoint."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-1.5-flash-latest",
        transport: Optional[Transport] = None,
        timeout: float = 120.0,
    ) -> None:
        super().__init__(model=model)
        self._api_key = api_key or os.getenv("GEMINI_API_KEY")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport or self._http_transport

        if transport is None and not self._api_key:
            raise ValueError("An API key is required when using the default transport.")

    def build_payload(self, request: LLMRequest) -> Dict[str, Any]:
        generation = request.generation
        return {
            "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
            "generationConfig": {
                "temperature": generation.temperature,
                "topP": generation.top_p,
                "maxOutputTokens": generation.max_output_tokens,
            },
        }

    def endpoint(self, model: str) -> str:
        return f"{self._base_url}/models/{urllib.parse.quote(model, safe='')}:generateContent"

    def _raw_invoke(self, model: str, payload: Dict[str, Any]) -> str:
        """Send the request over the configured transport and extract the text."""
        LOGGER.info("Calling Gemini model: %s", model)
        try:
            raw_response = self._transport(model, payload)
        except LLMTransportError:
            raise
        except Exception as error:
            raise LLMTransportError(f"Transport rejected the request: {error}") from error
        return self._extract_text(raw_response)

    def _http_transport(self, model: str, payload: Dict[str, Any]) -> str:
        """Default HTTP transport targeting the Gemini REST API."""
        import urllib.error
        import urllib.request

        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(
            self.endpoint(model),
            data=data,
            headers={
                "Content-Type": "application/json",
                "x-goog-api-key": self._api_key or "",
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                raw = response.read()
                status = getattr(response, "status", 200)
        except TimeoutError as error:  # pragma: no cover - network-dependent
            raise LLMTransportError("Gemini response timed out.") from error
        except urllib.error.HTTPError as error:  # pragma: no cover - network-dependent
            message = error.read().decode("utf-8", errors="ignore")
            raise LLMTransportError(
                f"Gemini API error {error.code}: {message}",
                status=error.code,
                body=message,
            ) from error
        except urllib.error.URLError as error:  # pragma: no cover - network-dependent
            raise LLMTransportError(f"Failed to reach Gemini endpoint: {error.reason}") from error

        body = raw.decode("utf-8", errors="replace")
        if status >= 400:
            raise LLMTransportError(f"Gemini API error {status}: {body}", status=status, body=body)
        return body

    @staticmethod
    def _extract_text(raw_response: str) -> str:
        """Concatenate the text parts of the first candidate."""
        try:
            data = json.loads(raw_response)
        except json.JSONDecodeError as error:
            snippet = raw_response[:200]
            raise LLMResponseFormatError(f"Gemini returned invalid JSON: {snippet}") from error

        try:
            parsed = _RESPONSE_ADAPTER.validate_python(data)
        except ValidationError as error:
            raise LLMResponseFormatError(f"Unexpected Gemini response shape: {error}") from error

        if not parsed.candidates:
            return ""
        content = parsed.candidates[0].content
        if content is None:
            return ""
        return "".join(part.text for part in content.parts).strip()
