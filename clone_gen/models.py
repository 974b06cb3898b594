"""
Data models and schemas for the website cloning pipeline.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class Stage(str, Enum):
    """Named pipeline stages reported alongside progress."""
    PREPARING = "preparing"
    GENERATING = "generating"
    CONTINUATION = "continuation"
    REVISING = "revising"
    FINALIZING = "finalizing"
    FAILED = "failed"
    COMPLETED = "completed"


class ProjectStatus(str, Enum):
    """Lifecycle status of a project record."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# A screenshot reference: a URL or data URL, {"url": ...}, or an
# already formatted {"type": "image_url", "image_url": {"url": ...}} part.
ImageRef = Union[str, Dict[str, Any]]


class GeneratedFile(BaseModel):
    """A single file of the generated project, keyed by path."""
    path: str
    content: str

    class Config:
        frozen = True


class FileDiff(BaseModel):
    """A partial edit against an existing generated file."""
    path: str
    old_content: str
    new_content: str

    class Config:
        frozen = True


class ColorInfo(BaseModel):
    """Average color sampled from one reference image."""
    hex: str
    rgb: str
    is_dark: bool
    is_light: bool
    description: str


class GenerationContext(BaseModel):
    """Immutable input to one pipeline run."""
    project_id: str
    site_url: str
    user_prompt: Optional[str] = None
    images: List[ImageRef] = Field(default_factory=list)
    raw_markup: str = ""

    class Config:
        frozen = True

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "GenerationContext":
        """
        Build a context from a workflow payload.

        Accepts the engine's camelCase payload
        ({images, markup | html, userPrompt, siteUrl, projectId})
        as well as the snake_case field names.
        """
        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if payload.get(key) is not None:
                    return payload[key]
            return default

        project_id = str(pick("project_id", "projectId", default="")).strip()
        if not project_id:
            raise ValueError("projectId is required")

        images = pick("images", default=[])
        if not isinstance(images, (list, tuple)):
            raise ValueError(f"images must be a list of image references, got {type(images).__name__}")

        return cls(
            project_id=project_id,
            site_url=pick("site_url", "siteUrl", default=""),
            user_prompt=pick("user_prompt", "userPrompt") or None,
            images=list(images),
            raw_markup=pick("raw_markup", "markup", "html", default="") or "",
        )


class ProgressState(BaseModel):
    """Last progress value written for a project."""
    project_id: str
    progress: int = Field(default=0, ge=0, le=100)
    stage: Optional[Stage] = None
