"""
Utilities for loading and normalizing reference screenshots.
"""

import base64
import mimetypes
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import httpx
from PIL import Image

from clone_gen.models import ImageRef


class ReferenceLoader:
    """Resolves screenshot references and loads them as images."""

    def __init__(
        self,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        """
        Initialize reference loader.

        Args:
            http_client: Optional shared httpx client used for remote images.
            timeout: Timeout in seconds for fetching remote images.
        """
        self.timeout = timeout
        self._http_client = http_client

    @staticmethod
    def image_url(ref: ImageRef) -> Optional[str]:
        """
        Extract the URL from any supported image reference shape.

        Args:
            ref: A URL string, {"url": ...} or {"image_url": {"url": ...}}.

        Returns:
            The URL, or None if the reference carries none.
        """
        if isinstance(ref, str):
            return ref or None
        if isinstance(ref, dict):
            if ref.get("url"):
                return ref["url"]
            image_url = ref.get("image_url")
            if isinstance(image_url, dict) and image_url.get("url"):
                return image_url["url"]
            if isinstance(image_url, str) and image_url:
                return image_url
        return None

    def format_images(self, images: List[ImageRef]) -> List[Dict[str, Any]]:
        """
        Format image references as model message parts.

        References without a URL are dropped.

        Returns:
            List of {"type": "image_url", "image_url": {"url": ...}} parts.
        """
        parts = []
        for ref in images or []:
            url = self.image_url(ref)
            if not url:
                continue
            parts.append({"type": "image_url", "image_url": {"url": url}})
        return parts

    def load_image(self, ref: ImageRef) -> Image.Image:
        """
        Load an image from a data URL, an http(s) URL or a local path.

        Returns:
            PIL Image object in RGBA mode.
        """
        url = self.image_url(ref)
        if not url:
            raise ValueError(f"Image reference has no URL: {str(ref)[:100]}")

        if url.startswith("data:"):
            header, _, data = url.partition(",")
            if ";base64" not in header:
                raise ValueError("Only base64 data URLs are supported")
            raw = base64.b64decode(data)
        elif url.startswith(("http://", "https://")):
            raw = self._fetch(url)
        else:
            image_path = Path(url)
            if not image_path.exists():
                raise FileNotFoundError(f"Image not found: {image_path}")
            raw = image_path.read_bytes()

        image = Image.open(BytesIO(raw))
        image.load()
        return image.convert("RGBA")

    def _fetch(self, url: str) -> bytes:
        """Download a remote image."""
        if self._http_client is not None:
            response = self._http_client.get(url, timeout=self.timeout)
        else:
            with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
                response = client.get(url)
        response.raise_for_status()
        return response.content

    def image_to_data_url(self, image_path: Union[str, Path]) -> str:
        """
        Encode a local image file as a base64 data URL.

        Args:
            image_path: Path to the image file.

        Returns:
            data:<mime>;base64,<payload> string.
        """
        image_path = Path(image_path)
        if not image_path.exists():
            raise FileNotFoundError(f"Image not found: {image_path}")

        mime_type = mimetypes.guess_type(image_path.name)[0] or "image/png"
        payload = base64.b64encode(image_path.read_bytes()).decode("utf-8")
        return f"data:{mime_type};base64,{payload}"
