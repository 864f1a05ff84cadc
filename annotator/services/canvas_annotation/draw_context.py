"""
Page Draw Context

Explicit drawing state for one destination page. Color, line width, font
and opacity are held here and applied to each primitive as it is emitted,
instead of living as ambient state on the output document.

Coordinates passed in are canvas/user units; the context scales them to
PDF points. Font sizes are always points.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

import fitz  # PyMuPDF

from .color_codec import RGB, decode_color, to_unit_rgb

logger = logging.getLogger(__name__)

# Common family names mapped to PyMuPDF's Base-14 font codes
FONT_ALIASES = {
    "times": "tiro",
    "times-roman": "tiro",
    "helvetica": "helv",
    "arial": "helv",
    "courier": "cour",
    "symbol": "symb",
    "zapfdingbats": "zadb",
}


@dataclass
class DrawState:
    """Mutable drawing parameters of a page."""

    draw_color: RGB = (0, 0, 0)
    fill_color: RGB = (0, 0, 0)
    text_color: RGB = (0, 0, 0)
    line_width: float = 0.2  # user units
    font_name: str = "tiro"
    font_size: float = 12.0  # points
    opacity: float = 1.0


class PageDrawContext:
    """
    Drawing surface for a single destination page.

    The state setters accept raw canvas color descriptors and decode them
    with the color codec, so an unsupported color fails before anything is
    drawn with it.
    """

    def __init__(self, page: fitz.Page, unit_scale: float = 1.0, state: Optional[DrawState] = None):
        """
        Args:
            page: Destination PyMuPDF page
            unit_scale: PDF points per user unit
            state: Initial drawing state (defaults to black, full opacity)
        """
        self.page = page
        self.unit_scale = unit_scale
        self.state = state or DrawState()

    @property
    def page_number(self) -> int:
        """1-based number of the destination page."""
        return self.page.number + 1

    # ---- state ---- #

    def set_draw_color(self, color: Any) -> None:
        self.state.draw_color = decode_color(color)

    def set_fill_color(self, color: Any) -> None:
        self.state.fill_color = decode_color(color)

    def set_text_color(self, color: Any) -> None:
        self.state.text_color = decode_color(color)

    def set_line_width(self, width: float) -> None:
        self.state.line_width = float(width)

    def set_font(self, family: str) -> None:
        self.state.font_name = FONT_ALIASES.get(family.strip().lower(), family)

    def set_font_size(self, size: float) -> None:
        self.state.font_size = float(size)

    def set_opacity(self, opacity: float) -> None:
        if not 0.0 <= opacity <= 1.0:
            raise ValueError(f"opacity must be between 0 and 1, got {opacity}")
        self.state.opacity = float(opacity)

    # ---- primitives ---- #

    def _point(self, x: float, y: float) -> fitz.Point:
        return fitz.Point(x * self.unit_scale, y * self.unit_scale)

    def lines(self, segments: Iterable[tuple[tuple[float, float], tuple[float, float]]]) -> int:
        """
        Stroke independent line segments with the current draw color and width.

        Args:
            segments: ((x1, y1), (x2, y2)) pairs in user units

        Returns:
            Number of segments drawn
        """
        shape = self.page.new_shape()
        count = 0
        for (x1, y1), (x2, y2) in segments:
            shape.draw_line(self._point(x1, y1), self._point(x2, y2))
            count += 1

        if count:
            shape.finish(
                color=to_unit_rgb(self.state.draw_color),
                fill=None,
                width=self.state.line_width * self.unit_scale,
                closePath=False,
                stroke_opacity=self.state.opacity,
            )
            shape.commit()
        return count

    def rect(self, x: float, y: float, width: float, height: float) -> None:
        """Fill a rectangle with the current fill color and opacity."""
        rect = fitz.Rect(self._point(x, y), self._point(x + width, y + height))
        shape = self.page.new_shape()
        shape.draw_rect(rect)
        shape.finish(
            color=None,
            fill=to_unit_rgb(self.state.fill_color),
            fill_opacity=self.state.opacity,
        )
        shape.commit()

    def text(self, x: float, y: float, content: str) -> int:
        """
        Write a line of text with its baseline starting at (x, y).

        Returns:
            Number of lines written, as reported by PyMuPDF
        """
        return self.page.insert_text(
            self._point(x, y),
            content,
            fontname=self.state.font_name,
            fontsize=self.state.font_size,
            color=to_unit_rgb(self.state.text_color),
        )
