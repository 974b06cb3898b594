"""
Tests for reference image loading.
"""

from io import BytesIO

import httpx
import pytest
from PIL import Image

from clone_gen.io.reference_loader import ReferenceLoader


def _png_bytes(color=(0, 0, 255)):
    buffer = BytesIO()
    Image.new("RGB", (8, 8), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.mark.parametrize("ref,expected", [
    ("https://example.com/a.png", "https://example.com/a.png"),
    ({"url": "https://example.com/b.png"}, "https://example.com/b.png"),
    ({"type": "image_url", "image_url": {"url": "data:image/png;base64,AA"}}, "data:image/png;base64,AA"),
    ({"image_url": "https://example.com/c.png"}, "https://example.com/c.png"),
    ({}, None),
    ("", None),
])
def test_image_url(ref, expected):
    """Test URL extraction from every reference shape."""
    assert ReferenceLoader.image_url(ref) == expected


def test_format_images_drops_unusable_refs():
    """Test message part formatting."""
    parts = ReferenceLoader().format_images(["https://example.com/a.png", {}, {"url": "u"}])
    assert parts == [
        {"type": "image_url", "image_url": {"url": "https://example.com/a.png"}},
        {"type": "image_url", "image_url": {"url": "u"}},
    ]


def test_load_local_image_and_data_url(tmp_path):
    """Test loading from a path and from its data URL."""
    image_path = tmp_path / "shot.png"
    image_path.write_bytes(_png_bytes())
    loader = ReferenceLoader()

    from_path = loader.load_image(str(image_path))
    data_url = loader.image_to_data_url(image_path)
    from_data_url = loader.load_image(data_url)

    assert data_url.startswith("data:image/png;base64,")
    assert from_path.mode == "RGBA"
    assert from_data_url.getpixel((0, 0)) == (0, 0, 255, 255)


def test_load_remote_image():
    """Test fetching an image over HTTP."""
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=_png_bytes((255, 0, 0))))
    loader = ReferenceLoader(http_client=httpx.Client(transport=transport))

    image = loader.load_image("https://example.com/shot.png")

    assert image.getpixel((0, 0)) == (255, 0, 0, 255)


def test_load_missing_image(tmp_path):
    """Test errors for unusable references."""
    loader = ReferenceLoader()
    with pytest.raises(FileNotFoundError):
        loader.load_image(str(tmp_path / "missing.png"))
    with pytest.raises(ValueError):
        loader.load_image({})
