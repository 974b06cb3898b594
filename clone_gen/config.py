"""
Configuration for the generation pipeline.

Values come from explicit arguments or, through from_env(), from environment
variables (a local .env file is honoured via python-dotenv).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "google/gemini-2.0-pro-exp-02-05:free"


@dataclass
class ModelSettings:
    """Connection and sampling settings for the generative model API."""
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    max_tokens: int = 8192
    temperature: float = 0.1
    top_p: float = 0.7
    timeout_seconds: float = 180.0
    app_url: str = ""
    app_title: str = "CloneAI.dev"

    @classmethod
    def from_env(cls) -> "ModelSettings":
        """Read model settings from environment variables."""
        load_dotenv()

        return cls(
            api_key=os.getenv("OPENROUTER_API_KEY", ""),
            base_url=os.getenv("OPENROUTER_BASE_URL", DEFAULT_BASE_URL),
            model=os.getenv("GENERATION_MODEL", DEFAULT_MODEL),
            max_tokens=int(os.getenv("GENERATION_MAX_TOKENS", "8192")),
            temperature=float(os.getenv("GENERATION_TEMPERATURE", "0.1")),
            top_p=float(os.getenv("GENERATION_TOP_P", "0.7")),
            timeout_seconds=float(os.getenv("MODEL_TIMEOUT_SECONDS", "180")),
            app_url=os.getenv("APP_URL", ""),
            app_title=os.getenv("APP_TITLE", "CloneAI.dev"),
        )


@dataclass
class PipelineConfig:
    """Limits and knobs for one pipeline instance."""
    model: ModelSettings = field(default_factory=ModelSettings)

    # Continuation
    max_continuation_attempts: int = 5

    # Prompt construction
    max_images: int = 5
    markup_sample_chars: int = 1000
    max_revision_files: int = 10

    # Color analysis
    max_color_images: int = 5
    color_workers: int = 5
    image_timeout_seconds: float = 30.0

    # Prepare stage
    max_markup_chars: int = 30000

    # Revision stage
    enable_revision: bool = True

    output_dir: Path = Path("outputs")

    @classmethod
    def from_env(cls, output_dir: Optional[Path] = None) -> "PipelineConfig":
        """Build a config from environment variables."""
        load_dotenv()

        return cls(
            model=ModelSettings.from_env(),
            max_continuation_attempts=int(os.getenv("MAX_CONTINUATION_ATTEMPTS", "5")),
            max_markup_chars=int(os.getenv("MAX_MARKUP_CHARS", "30000")),
            enable_revision=os.getenv("ENABLE_REVISION", "true").lower() == "true",
            output_dir=output_dir or Path(os.getenv("OUTPUT_DIR", "outputs")),
        )
