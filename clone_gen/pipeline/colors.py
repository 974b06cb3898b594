"""
Color guidance extracted from reference screenshots.

Each sampled image is reduced to one average color and a short human-readable
name. Results are advisory prompt text only; a failing image is logged and
skipped without affecting its siblings.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image

from clone_gen.io.reference_loader import ReferenceLoader
from clone_gen.models import ColorInfo, ImageRef
from clone_gen.utils.llm_logger import LLMLogger


# Grayscale when every channel pair differs by less than this
GRAYSCALE_TOLERANCE = 20
# YIQ luma threshold separating dark from light colors
DARK_LUMA_THRESHOLD = 128


def average_color(image: Image.Image, sample_size: int = 256) -> Tuple[int, int, int]:
    """
    Compute the alpha-weighted root-mean-square average RGB of an image.

    Args:
        image: PIL Image in any mode.
        sample_size: Longest side the image is downscaled to before sampling.

    Returns:
        (r, g, b) tuple of ints in 0-255.
    """
    image = image.convert("RGBA")
    image.thumbnail((sample_size, sample_size))

    pixels = np.asarray(image, dtype=np.float64).reshape(-1, 4)
    alpha = pixels[:, 3] / 255.0
    total = alpha.sum()
    if total == 0:
        return (0, 0, 0)

    rgb = np.sqrt((pixels[:, :3] ** 2 * alpha[:, None]).sum(axis=0) / total)
    r, g, b = (int(round(v)) for v in rgb)
    return (r, g, b)


def describe_color(r: int, g: int, b: int) -> str:
    """Name a color in plain words, e.g. "dark blue" or "light gray"."""
    is_grayscale = (
        abs(r - g) < GRAYSCALE_TOLERANCE
        and abs(g - b) < GRAYSCALE_TOLERANCE
        and abs(r - b) < GRAYSCALE_TOLERANCE
    )

    if is_grayscale:
        brightness = round((r + g + b) / 3)
        if brightness > 240:
            return "white"
        if brightness > 190:
            return "light gray"
        if brightness > 120:
            return "gray"
        if brightness > 60:
            return "dark gray"
        return "black"

    highest = max(r, g, b)
    if highest == r:
        if g > b + 50:
            description = "yellow" if g > r * 0.8 else "orange"
        else:
            description = "pink" if b > r * 0.8 else "red"
    elif highest == g:
        description = "lime green" if r > b + 50 else "green"
    else:
        description = "purple" if r > g + 50 else "blue"

    brightness = (r + g + b) / 3
    if brightness < 80:
        description = "dark " + description
    elif brightness > 200:
        description = "light " + description

    return description


def color_info(r: int, g: int, b: int) -> ColorInfo:
    """Build ColorInfo for an RGB triple."""
    is_dark = (r * 299 + g * 587 + b * 114) / 1000 < DARK_LUMA_THRESHOLD
    return ColorInfo(
        hex=f"#{r:02x}{g:02x}{b:02x}",
        rgb=f"rgb({r},{g},{b})",
        is_dark=is_dark,
        is_light=not is_dark,
        description=describe_color(r, g, b),
    )


class ColorAnalyzer:
    """Samples average colors from a capped subset of reference images."""

    def __init__(
        self,
        loader: Optional[ReferenceLoader] = None,
        logger: Optional[LLMLogger] = None,
        max_images: int = 5,
        max_workers: int = 5,
    ):
        """
        Initialize the analyzer.

        Args:
            loader: Loader used to fetch and decode images.
            logger: Logger for per-image outcomes.
            max_images: How many leading images are sampled.
            max_workers: Upper bound on concurrent image samplings.
        """
        self.loader = loader or ReferenceLoader()
        self.logger = logger or LLMLogger()
        self.max_images = max_images
        self.max_workers = max_workers

    def analyze_image(self, ref: ImageRef) -> ColorInfo:
        """Load one image and describe its average color."""
        image = self.loader.load_image(ref)
        return color_info(*average_color(image))

    def analyze(self, images: List[ImageRef], project_id: Optional[str] = None) -> List[ColorInfo]:
        """
        Extract color information from the first max_images images.

        Returns:
            ColorInfo per successfully sampled image, in image order.
        """
        refs = list(images or [])[:self.max_images]
        if not refs:
            return []

        self.logger.log_event(project_id, f"Extracting color information from {len(refs)} images...")

        colors: List[ColorInfo] = []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(refs))) as executor:
            futures = [executor.submit(self.analyze_image, ref) for ref in refs]
            for index, future in enumerate(futures, start=1):
                try:
                    info = future.result()
                except Exception as e:
                    self.logger.log_error(project_id, f"Error extracting color from image {index}:", e)
                    continue
                colors.append(info)
                self.logger.log_event(
                    project_id,
                    f"Extracted color from image {index}: {info.hex} ({info.description})",
                )

        return colors
