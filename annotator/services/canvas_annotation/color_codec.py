"""
Color Codec

Converts the color values produced by the canvas editor (named colors,
``rgb()``/``rgba()`` strings, bare channel triples and hex strings) into
0-255 RGB tuples, and from there into PyMuPDF's 0.0-1.0 float tuples.
"""

import re
from typing import Any, Sequence

from .exceptions import UnsupportedColorFormat

RGB = tuple[int, int, int]

NAMED_COLORS: dict[str, RGB] = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "red": (255, 0, 0),
    "lime": (0, 255, 0),
    "green": (0, 128, 0),
    "blue": (0, 0, 255),
    "yellow": (255, 255, 0),
    "cyan": (0, 255, 255),
    "aqua": (0, 255, 255),
    "magenta": (255, 0, 255),
    "fuchsia": (255, 0, 255),
    "silver": (192, 192, 192),
    "gray": (128, 128, 128),
    "grey": (128, 128, 128),
    "maroon": (128, 0, 0),
    "olive": (128, 128, 0),
    "purple": (128, 0, 128),
    "teal": (0, 128, 128),
    "navy": (0, 0, 128),
    "orange": (255, 165, 0),
    "pink": (255, 192, 203),
    "brown": (165, 42, 42),
}

_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)"
_FUNCTIONAL = re.compile(
    rf"^rgba?\(\s*({_NUMBER})\s*,\s*({_NUMBER})\s*,\s*({_NUMBER})\s*(?:,\s*{_NUMBER}\s*)?\)$"
)
_TRIPLE = re.compile(rf"^({_NUMBER})\s*[,\s]\s*({_NUMBER})\s*[,\s]\s*({_NUMBER})$")
_HEX = re.compile(r"^#([0-9a-f]{3}|[0-9a-f]{6})$")


def _channels(values: Sequence[Any], original: Any) -> RGB:
    """Validate three numeric channels and round them to ints."""
    try:
        channels = [float(v) for v in values]
    except (TypeError, ValueError):
        raise UnsupportedColorFormat(original) from None

    if len(channels) != 3 or any(not 0 <= c <= 255 for c in channels):
        raise UnsupportedColorFormat(original)

    r, g, b = (int(round(c)) for c in channels)
    return r, g, b


def decode_color(value: Any) -> RGB:
    """
    Decode a canvas color value into an (r, g, b) tuple of 0-255 ints.

    Args:
        value: Color name, "rgb(r, g, b)", "rgba(r, g, b, a)", "r,g,b",
            "#rrggbb", "#rgb", or a sequence of three numbers

    Returns:
        Tuple of three integer channels

    Raises:
        UnsupportedColorFormat: If the value cannot be decoded
    """
    if isinstance(value, (list, tuple)):
        return _channels(value, value)

    if not isinstance(value, str):
        raise UnsupportedColorFormat(value)

    text = value.strip().lower()

    if text in NAMED_COLORS:
        return NAMED_COLORS[text]

    match = _FUNCTIONAL.match(text) or _TRIPLE.match(text)
    if match:
        return _channels(match.groups(), value)

    match = _HEX.match(text)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(d * 2 for d in digits)
        return tuple(int(digits[i:i + 2], 16) for i in (0, 2, 4))

    raise UnsupportedColorFormat(value)


def to_unit_rgb(rgb: RGB) -> tuple[float, float, float]:
    """Convert 0-255 channels to the 0.0-1.0 floats PyMuPDF expects."""
    r, g, b = rgb
    return r / 255.0, g / 255.0, b / 255.0
