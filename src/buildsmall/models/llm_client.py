"""Text client base class shared by language-model integrations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

__all__ = [
    "GenerationConfig",
    "LLMClient",
    "LLMClientError",
    "LLMRequest",
    "LLMResponseFormatError",
    "LLMTransportError",
]


class LLMClientError(RuntimeError):
    """Base error raised for LLM client failures."""


class LLMTransportError(LLMClientError):
    """Raised when the underlying transport fails to return a response."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class LLMResponseFormatError(LLMClientError):
    """Raised when the provider payload does not have the documented shape."""


@dataclass(frozen=True, slots=True)
class GenerationConfig:
    """Sampling configuration; low temperature and capped output by default."""

    temperature: float = 0.2
    top_p: float = 0.9
    max_output_tokens: int = 1400


@dataclass(slots=True)
class LLMRequest:
    """Single-turn prompt sent to a model."""

    prompt: str
    model: Optional[str] = None
    generation: GenerationConfig = field(default_factory=GenerationConfig)


class LLMClient:
    """Single-shot text client: one request, one response, no retries."""

    def __init__(self, model: str) -> None:
        self._model = model

    @property
    def model(self) -> str:
        """Return the default model name configured for this client."""
        return self._model

    def invoke(self, request: LLMRequest) -> str:
        """Send ``request`` and return the model's text output."""
        model = request.model or self._model
        payload = self.build_payload(request)
        return self._raw_invoke(model, payload)

    def generate(self, prompt: str, *, model: Optional[str] = None, generation: GenerationConfig | None = None) -> str:
        """Convenience wrapper around :meth:`invoke` for a bare prompt."""
        request = LLMRequest(prompt=prompt, model=model, generation=generation or GenerationConfig())
        return self.invoke(request)

    def build_payload(self, request: LLMRequest) -> Dict[str, Any]:
        """Render a transport-ready payload. Subclasses must implement."""
        raise NotImplementedError("Subclasses must implement build_payload().")

    def _raw_invoke(self, model: str, payload: Dict[str, Any]) -> str:
        """Perform the transport call. Subclasses must implement."""
        raise NotImplementedError("Subclasses must implement _raw_invoke().")
