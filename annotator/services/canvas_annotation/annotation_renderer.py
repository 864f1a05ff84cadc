"""
Annotation Renderer

Draws decoded canvas objects onto a page draw context:
- Freehand paths as connected line segments
- Text boxes at their baseline
- Highlight rectangles as translucent fills
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .draw_context import PageDrawContext
from .models import CanvasObject, PathObject, RectObject, TextObject

logger = logging.getLogger(__name__)


@dataclass
class AnnotationStyle:
    """Fixed drawing parameters shared by all annotations."""

    # Line width of freehand paths, in user units
    brush_size: float = 0.50

    # Font family of text objects
    font_name: str = "Times"

    # Canvas font size / font_ratio = PDF font size
    font_ratio: float = 1.6

    # Fill opacity of highlight rectangles
    highlight_opacity: float = 0.30

    # Opacity restored once a highlight has been drawn
    full_opacity: float = 1.0

    @classmethod
    def from_settings(cls, settings) -> "AnnotationStyle":
        """Create style from application settings."""
        return cls(
            brush_size=settings.brush_size,
            font_name=settings.font_name,
            font_ratio=settings.font_ratio,
            highlight_opacity=settings.highlight_opacity,
            full_opacity=settings.full_opacity,
        )


class AnnotationRenderer:
    """
    Renders decoded annotation objects.

    Every call sets the state it needs on the context before drawing, so
    objects do not depend on what the previous object left behind.
    """

    def __init__(self, style: Optional[AnnotationStyle] = None):
        """
        Initialize the annotation renderer.

        Args:
            style: Annotation style configuration
        """
        self.style = style or AnnotationStyle()

    def render_object(self, obj: CanvasObject, ctx: PageDrawContext) -> None:
        """Dispatch a decoded object to its drawing primitive."""
        if isinstance(obj, PathObject):
            self.render_path(obj, ctx)
        elif isinstance(obj, TextObject):
            self.render_text(obj, ctx)
        elif isinstance(obj, RectObject):
            self.render_rect(obj, ctx)
        else:
            raise TypeError(f"Cannot render {type(obj).__name__}")

    def render_path(self, path: PathObject, ctx: PageDrawContext) -> int:
        """
        Draw a freehand path as a polyline.

        Args:
            path: Absolute points and stroke color
            ctx: Page draw context

        Returns:
            Number of line segments drawn (0 for fewer than two points)
        """
        if len(path.points) < 2:
            logger.debug(f"Skipping path with {len(path.points)} point(s) on page {ctx.page_number}")
            return 0

        ctx.set_draw_color(path.stroke_color)
        ctx.set_line_width(self.style.brush_size)
        return ctx.lines(zip(path.points, path.points[1:]))

    def render_text(self, text: TextObject, ctx: PageDrawContext) -> None:
        """
        Write a text object.

        The canvas anchors text boxes at their top-left corner while PDF text
        is placed on its baseline, so the baseline is top + box height.
        """
        ctx.set_text_color(text.color)
        ctx.set_font(self.style.font_name)
        ctx.set_font_size(text.font_size / self.style.font_ratio)
        ctx.text(text.x, text.y + text.height, text.text)

    def render_rect(self, rect: RectObject, ctx: PageDrawContext) -> None:
        """Draw a translucent highlight rectangle, then restore full opacity."""
        try:
            ctx.set_fill_color(rect.fill_color)
            ctx.set_opacity(self.style.highlight_opacity)
            ctx.rect(rect.x, rect.y, rect.width, rect.height)
        finally:
            ctx.set_opacity(self.style.full_opacity)
