"""Typed signature: the signer's name drawn onto an image, as a PNG data URI."""

import base64
import io
import logging
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from anamnesis.config import get_settings

logger = logging.getLogger(__name__)

SIGNATURE_SIZE = (600, 150)
DATA_URI_PREFIX = "data:image/png;base64,"


def _load_font(path: Optional[str], size: int):
    if path:
        try:
            return ImageFont.truetype(path, size)
        except OSError as exc:
            logger.warning("Signature font %s unavailable (%s); using default font", path, exc)
    return ImageFont.load_default()


def render_typed_signature(name: str, font_path: Optional[str] = None,
                           font_size: Optional[int] = None) -> str:
    """
    Draw ``name`` centred on a white canvas and return it as a PNG data URI.

    A blank name yields ``""`` (the field is cleared).
    """
    text = (name or "").strip()
    if not text:
        return ""

    settings = get_settings()
    font = _load_font(font_path or settings.signature_font_path,
                      font_size or settings.signature_font_size)

    image = Image.new("RGB", SIGNATURE_SIZE, "#ffffff")
    draw = ImageDraw.Draw(image)
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = (SIGNATURE_SIZE[0] - (right - left)) / 2 - left
    y = (SIGNATURE_SIZE[1] - (bottom - top)) / 2 - top
    draw.text((x, y), text, fill="#1a1a1a", font=font)

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return DATA_URI_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")


def is_signature(value) -> bool:
    """Whether a stored answer looks like a rendered signature."""
    return isinstance(value, str) and value.startswith(DATA_URI_PREFIX)
