"""
Client for an OpenRouter-compatible chat completions API.

One call per complete(): no internal retries. Failures are classified as
ModelRequestError (transport, timeout, non-2xx) or ModelResponseFormatError
(unexpected response shape) and left for the caller's stage to handle.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import httpx
from langchain_core.messages import BaseMessage

from clone_gen.config import ModelSettings
from clone_gen.exceptions import ModelRequestError, ModelResponseFormatError
from clone_gen.utils.llm_logger import LLMLogger


ERROR_BODY_CHARS = 200

_ROLES = {
    "system": "system",
    "human": "user",
    "ai": "assistant",
}

Message = Union[BaseMessage, Dict[str, Any]]


def to_wire_messages(messages: List[Message]) -> List[Dict[str, Any]]:
    """Convert message objects into chat completions message dicts."""
    wire = []
    for message in messages:
        if isinstance(message, dict):
            wire.append(message)
            continue
        role = _ROLES.get(message.type)
        if role is None:
            raise ValueError(f"Unsupported message type: {message.type}")
        wire.append({"role": role, "content": message.content})
    return wire


@dataclass
class ModelReply:
    """Text returned by one model call."""
    content: str
    model: str
    finish_reason: Optional[str] = None

    # Token usage
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    latency_ms: float = 0.0
    raw_response: Dict[str, Any] = field(default_factory=dict)


class ModelClient:
    """Single-call wrapper around the chat completions endpoint."""

    def __init__(
        self,
        settings: Optional[ModelSettings] = None,
        logger: Optional[LLMLogger] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Model and connection settings.
            logger: Logger for call tracing.
            http_client: Optional pre-built httpx client (e.g. with a mock
                transport). Created lazily when omitted.
        """
        self.settings = settings or ModelSettings()
        self.logger = logger or LLMLogger()
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def endpoint(self) -> str:
        return f"{self.settings.base_url.rstrip('/')}/chat/completions"

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=httpx.Timeout(self.settings.timeout_seconds))
        return self._client

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ModelClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def build_headers(self) -> Dict[str, str]:
        """Headers for a chat completions request."""
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.api_key}",
            "HTTP-Referer": self.settings.app_url,
            "X-Title": self.settings.app_title,
        }

    def build_payload(self, messages: List[Message]) -> Dict[str, Any]:
        """Request body for a chat completions request."""
        return {
            "model": self.settings.model,
            "messages": to_wire_messages(messages),
            "max_tokens": self.settings.max_tokens,
            "temperature": self.settings.temperature,
            "top_p": self.settings.top_p,
        }

    def complete(
        self,
        messages: List[Message],
        project_id: Optional[str] = None,
        component: str = "generation",
    ) -> ModelReply:
        """
        Send one chat completion request.

        Args:
            messages: Conversation so far.
            project_id: Project the call belongs to, for logging.
            component: Pipeline component issuing the call, for logging.

        Returns:
            ModelReply with the first choice's message content.

        Raises:
            ModelRequestError: Missing API key, transport failure, timeout
                or non-2xx status.
            ModelResponseFormatError: Response body has an unexpected shape.
        """
        if not self.settings.api_key:
            raise ModelRequestError("Model API key is not set. Please check your environment variables.")

        payload = self.build_payload(messages)
        model = payload["model"]

        invocation_id = self.logger.log_invocation(component, model, project_id)
        self.logger.log_request(
            invocation_id,
            component,
            model,
            payload["messages"],
            temperature=payload["temperature"],
            max_tokens=payload["max_tokens"],
            project_id=project_id,
        )

        start_time = time.time()
        deadline = time.monotonic() + self.settings.timeout_seconds
        try:
            with self._get_client().stream(
                "POST",
                self.endpoint,
                json=payload,
                headers=self.build_headers(),
                timeout=self.settings.timeout_seconds,
            ) as response:
                body = self._read_body(response, deadline)
            reply = self._handle_response(response, body, model, start_time)
        except httpx.TimeoutException as e:
            error = ModelRequestError(f"Model request timed out after {self.settings.timeout_seconds}s")
            self.logger.log_failure(invocation_id, component, model, error, project_id)
            raise error from e
        except httpx.HTTPError as e:
            error = ModelRequestError(f"Model request failed: {e}")
            self.logger.log_failure(invocation_id, component, model, error, project_id)
            raise error from e
        except (ModelRequestError, ModelResponseFormatError) as e:
            self.logger.log_failure(invocation_id, component, model, e, project_id)
            raise

        self.logger.log_response(
            invocation_id,
            component,
            reply.model,
            reply.content,
            reply.latency_ms,
            finish_reason=reply.finish_reason,
            token_usage={
                "prompt_tokens": reply.prompt_tokens,
                "completion_tokens": reply.completion_tokens,
                "total_tokens": reply.total_tokens,
            },
            project_id=project_id,
        )
        return reply

    def _read_body(self, response: httpx.Response, deadline: float) -> bytes:
        """Read the whole response body, giving up once the deadline passes.

        The read timeout restarts on every chunk, so an upstream that trickles
        keep-alive bytes is only bounded by this check.
        """
        chunks = []
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            if time.monotonic() > deadline:
                raise ModelRequestError(
                    f"Model request timed out after {self.settings.timeout_seconds}s"
                )
        return b"".join(chunks)

    def _handle_response(
        self, response: httpx.Response, body: bytes, model: str, start_time: float
    ) -> ModelReply:
        """Check status and parse the body of a chat completions response."""
        latency_ms = (time.time() - start_time) * 1000

        if not response.is_success:
            text = body.decode(response.encoding or "utf-8", errors="replace")[:ERROR_BODY_CHARS]
            raise ModelRequestError(
                f"Model API returned {response.status_code}: {text}",
                status_code=response.status_code,
                body=text,
            )

        try:
            data = json.loads(body)
        except ValueError as e:
            raise ModelResponseFormatError(f"Model API response is not valid JSON: {e}") from e

        return self._parse_response(data, model, latency_ms)

    def _parse_response(self, data: Any, model: str, latency_ms: float) -> ModelReply:
        """Validate the response shape and build a ModelReply."""
        if not isinstance(data, dict):
            raise ModelResponseFormatError("Invalid response format from model API - not an object")

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ModelResponseFormatError("Invalid response format from model API - missing choices")

        choice = choices[0]
        message = choice.get("message") if isinstance(choice, dict) else None
        if not isinstance(message, dict):
            raise ModelResponseFormatError("Invalid response format from model API - missing message")

        content = message.get("content")
        if not isinstance(content, str):
            raise ModelResponseFormatError("Invalid response format from model API - content is not a string")

        usage = data.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        return ModelReply(
            content=content,
            model=data.get("model", model),
            finish_reason=choice.get("finish_reason"),
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
            total_tokens=usage.get("total_tokens"),
            latency_ms=latency_ms,
            raw_response=data,
        )
