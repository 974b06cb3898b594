"""
Debug logger for pipeline events and model API calls.

Supports configurable log levels (NONE, INFO, DEBUG, TRACE) and dual output:
- Console: Human-readable formatted output
- File: JSON Lines format under <log_dir>/<project_id>/logs/

One instance is created per pipeline and handed to every component; there is
no process-wide logger state.
"""

import json
import os
import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from dotenv import load_dotenv


class LogLevel(Enum):
    """Logging levels for debug output."""

    NONE = 0
    INFO = 1
    DEBUG = 2
    TRACE = 3


PIPELINE_LOG = "pipeline.jsonl"
LLM_CALLS_LOG = "llm_calls.jsonl"


class LLMLogger:
    """Leveled logger for pipeline events and model calls."""

    def __init__(
        self,
        level: Optional[Union[LogLevel, str]] = None,
        log_to_file: Optional[bool] = None,
        log_dir: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize the logger.

        Arguments left as None are read from LLM_DEBUG_LEVEL,
        LLM_LOG_TO_FILE and LLM_LOG_DIR.
        """
        load_dotenv()

        if level is None:
            level = os.getenv("LLM_DEBUG_LEVEL", "INFO")
        if isinstance(level, str):
            try:
                level = LogLevel[level.upper()]
            except KeyError:
                level = LogLevel.NONE
        self.level = level

        if log_to_file is None:
            log_to_file = os.getenv("LLM_LOG_TO_FILE", "true").lower() == "true"
        self.log_to_file = log_to_file
        self.log_dir = Path(log_dir or os.getenv("LLM_LOG_DIR", "outputs"))

    def _should_log(self, min_level: LogLevel) -> bool:
        """Check if we should log at the given level."""
        return self.level != LogLevel.NONE and self.level.value >= min_level.value

    def _format_timestamp(self) -> str:
        """Get ISO8601 formatted timestamp."""
        return datetime.now().isoformat()

    def _truncate_content(self, content: str, max_len: int = 200) -> str:
        """Truncate content for preview."""
        if len(content) <= max_len:
            return content
        return content[:max_len] + "... [truncated]"

    def _has_image_content(self, content: Any) -> bool:
        """Check if content contains image data."""
        if isinstance(content, str):
            return "data:image/" in content and "base64," in content
        if isinstance(content, list):
            return any(
                isinstance(item, dict) and item.get("type") in ("image_url", "image")
                for item in content
            )
        return False

    def _truncate_image_content(self, content: Any) -> Any:
        """Replace inline image payloads with a short size summary."""
        if isinstance(content, str):
            if "data:image/" in content and "base64," in content:
                head, _, data = content.partition("base64,")
                image_type = head.split("image/")[-1].split(";")[0]
                return f"[IMAGE_DATA: {image_type}, base64 encoded, {len(data):,} bytes]"
            return content

        if isinstance(content, list):
            summarized = []
            for item in content:
                if isinstance(item, dict) and item.get("type") == "image_url":
                    url = item.get("image_url", {})
                    url_value = url.get("url", "") if isinstance(url, dict) else str(url)
                    if url_value.startswith("data:"):
                        summarized.append({"type": "text", "text": self._truncate_image_content(url_value)})
                    else:
                        summarized.append({"type": "text", "text": f"[IMAGE_URL: {url_value}]"})
                else:
                    summarized.append(item)
            return summarized

        return content

    def _serialize_message(self, msg: Any) -> Dict[str, Any]:
        """Serialize a wire message or message object, truncating images."""
        if isinstance(msg, dict):
            role = msg.get("role", "unknown")
            content = msg.get("content", "")
        elif hasattr(msg, "content"):
            role = getattr(msg, "type", msg.__class__.__name__)
            content = msg.content
        else:
            return {"role": type(msg).__name__, "content": str(msg)}

        if self._has_image_content(content):
            content = self._truncate_image_content(content)
        return {"role": role, "content": content}

    def _write_to_file(self, project_id: Optional[str], filename: str, log_entry: Dict[str, Any]):
        """Append a log entry to a JSON Lines file."""
        if not self.log_to_file or not project_id:
            return

        log_file = self.log_dir / project_id / "logs" / filename
        log_file.parent.mkdir(parents=True, exist_ok=True)

        with open(log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(log_entry, ensure_ascii=False, default=str) + "\n")

    # ------------------------------------------------------------------
    # Pipeline events
    # ------------------------------------------------------------------

    def log_event(
        self,
        project_id: Optional[str],
        message: str,
        level: LogLevel = LogLevel.INFO,
        **fields: Any,
    ):
        """Log a pipeline event for a project."""
        if not self._should_log(level):
            return

        timestamp = self._format_timestamp()
        prefix = f"Project {project_id}: " if project_id else ""
        print(f"[{timestamp}] {prefix}{message}")

        self._write_to_file(project_id, PIPELINE_LOG, {
            "timestamp": timestamp,
            "level": level.name,
            "project_id": project_id,
            "message": message,
            **fields,
        })

    def log_error(
        self,
        project_id: Optional[str],
        message: str,
        error: Optional[BaseException] = None,
        **fields: Any,
    ):
        """Log a pipeline error for a project."""
        if not self._should_log(LogLevel.INFO):
            return

        timestamp = self._format_timestamp()
        prefix = f"Project {project_id}: " if project_id else ""
        detail = f" {type(error).__name__}: {error}" if error is not None else ""
        print(f"[{timestamp}] ❌ {prefix}{message}{detail}")

        self._write_to_file(project_id, PIPELINE_LOG, {
            "timestamp": timestamp,
            "level": "ERROR",
            "project_id": project_id,
            "message": message,
            "error_type": type(error).__name__ if error is not None else None,
            "error": str(error) if error is not None else None,
            **fields,
        })

    # ------------------------------------------------------------------
    # Model calls
    # ------------------------------------------------------------------

    def log_invocation(
        self,
        component: str,
        model: str,
        project_id: Optional[str] = None,
    ) -> str:
        """
        Log the start of a model invocation.

        Returns:
            Invocation ID (UUID string) for tracking this call, or ""
            when logging is disabled.
        """
        if not self._should_log(LogLevel.INFO):
            return ""

        invocation_id = str(uuid.uuid4())
        console_msg = f"[{self._format_timestamp()}] 🔵 LLM Call: [{component}] {model}"
        if project_id:
            console_msg += f" | project_id: {project_id}"
        print(console_msg)

        return invocation_id

    def log_request(
        self,
        invocation_id: str,
        component: str,
        model: str,
        messages: List[Any],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        project_id: Optional[str] = None,
    ):
        """Log request details."""
        if not self._should_log(LogLevel.DEBUG):
            return

        serialized = [self._serialize_message(msg) for msg in messages]
        image_count = sum(
            1
            for msg in serialized
            if isinstance(msg["content"], list)
            for item in msg["content"]
            if isinstance(item, dict) and str(item.get("text", "")).startswith("[IMAGE_")
        )

        print(f"  Messages: {len(messages)} ({image_count} images)")
        for i, msg in enumerate(serialized[:3]):
            preview = self._truncate_content(
                msg["content"] if isinstance(msg["content"], str) else json.dumps(msg["content"], ensure_ascii=False),
                150,
            )
            print(f"    {i + 1}. [{msg['role']}] {preview}")
        if len(serialized) > 3:
            print(f"    ... and {len(serialized) - 3} more")

        self._write_to_file(project_id, LLM_CALLS_LOG, {
            "timestamp": self._format_timestamp(),
            "level": self.level.name,
            "component": component,
            "invocation_id": invocation_id,
            "model": model,
            "project_id": project_id,
            "request": {
                "messages": serialized if self.level == LogLevel.TRACE else [],
                "message_count": len(messages),
                "image_count": image_count,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
        })

    def log_response(
        self,
        invocation_id: str,
        component: str,
        model: str,
        content: str,
        latency_ms: float,
        finish_reason: Optional[str] = None,
        token_usage: Optional[Dict[str, Any]] = None,
        project_id: Optional[str] = None,
    ):
        """Log a successful model response."""
        if not self._should_log(LogLevel.INFO):
            return

        total_tokens = (token_usage or {}).get("total_tokens")
        parts = [f"[{component}]", model, f"{latency_ms:.1f}ms"]
        if total_tokens is not None:
            parts.append(f"{total_tokens} tokens")
        if finish_reason:
            parts.append(f"finish: {finish_reason}")
        print(f"[{self._format_timestamp()}] ✅ LLM Response: " + " | ".join(parts))

        if self._should_log(LogLevel.DEBUG):
            print(f"  Response: {self._truncate_content(content, 200)}")

        self._write_to_file(project_id, LLM_CALLS_LOG, {
            "timestamp": self._format_timestamp(),
            "level": self.level.name,
            "component": component,
            "invocation_id": invocation_id,
            "model": model,
            "project_id": project_id,
            "response": {
                "content": content if self.level == LogLevel.TRACE else None,
                "content_preview": (
                    self._truncate_content(content, 200)
                    if self.level.value >= LogLevel.DEBUG.value
                    else None
                ),
                "content_length": len(content),
                "finish_reason": finish_reason,
            },
            "timing": {"latency_ms": latency_ms},
            "usage": token_usage or None,
        })

    def log_failure(
        self,
        invocation_id: str,
        component: str,
        model: str,
        error: BaseException,
        project_id: Optional[str] = None,
    ):
        """Log a failed model call."""
        if not self._should_log(LogLevel.INFO):
            return

        print(f"[{self._format_timestamp()}] ❌ LLM Error: [{component}] {type(error).__name__}: {error}")

        self._write_to_file(project_id, LLM_CALLS_LOG, {
            "timestamp": self._format_timestamp(),
            "level": "ERROR",
            "component": component,
            "invocation_id": invocation_id,
            "model": model,
            "project_id": project_id,
            "error_type": type(error).__name__,
            "error": str(error),
        })
