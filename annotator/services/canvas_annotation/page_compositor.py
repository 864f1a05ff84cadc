"""
Page Compositor

Builds one destination page per source page: the source page is imported
as a reusable template, stamped onto a new page of identical geometry, and
the page's canvas objects are drawn on top.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional

import fitz  # PyMuPDF

from .annotation_renderer import AnnotationRenderer
from .draw_context import PageDrawContext
from .exceptions import MalformedAnnotationObject, UnsupportedColorFormat
from .models import CanvasObject, ObjectType, Orientation, PageAnnotations
from .object_parsers import object_type_of, parse_path, parse_rectangle, parse_text

logger = logging.getLogger(__name__)


PARSERS: dict[str, Callable[[Mapping[str, Any]], CanvasObject]] = {
    ObjectType.PATH.value: parse_path,
    ObjectType.TEXT.value: parse_text,
    ObjectType.RECT.value: parse_rectangle,
}


class UnknownObjectPolicy(Enum):
    """Handling of canvas objects with an unrecognised type tag."""

    SKIP = "skip"
    WARN = "warn"
    ERROR = "error"


@dataclass(frozen=True)
class PageTemplate:
    """A source page imported for stamping."""

    source: fitz.Document
    page_number: int  # 1-indexed
    width: float  # points
    height: float  # points

    @property
    def orientation(self) -> Orientation:
        return Orientation.LANDSCAPE if self.width > self.height else Orientation.PORTRAIT


@dataclass
class PageCompositionResult:
    """Outcome of composing a single page."""

    page_number: int
    width: float
    height: float
    objects_rendered: int = 0
    objects_skipped: int = 0


class PageCompositor:
    """
    Composes destination pages from source templates and annotations.

    Pages must be composed in order on a single thread; each call appends
    one page to the destination document.
    """

    def __init__(
        self,
        renderer: Optional[AnnotationRenderer] = None,
        unit_scale: float = 1.0,
        template_offset: float = 1.0,
        adjust_page_size: bool = False,
        unknown_object_policy: UnknownObjectPolicy | str = UnknownObjectPolicy.WARN,
    ):
        """
        Initialize the page compositor.

        Args:
            renderer: Renderer used for the canvas objects
            unit_scale: PDF points per user unit
            template_offset: Stamp offset from the page origin on both axes, in user units
            adjust_page_size: Scale the template to the destination page instead of
                stamping it at its own size
            unknown_object_policy: skip, warn or error on unrecognised object types
        """
        self.renderer = renderer or AnnotationRenderer()
        self.unit_scale = unit_scale
        self.template_offset = template_offset
        self.adjust_page_size = adjust_page_size
        self.unknown_object_policy = UnknownObjectPolicy(unknown_object_policy)

    def import_page(self, source: fitz.Document, page_number: int) -> PageTemplate:
        """Import a 1-based source page as a template, recording its size."""
        rect = source[page_number - 1].rect
        return PageTemplate(source=source, page_number=page_number, width=rect.width, height=rect.height)

    def stamp(self, template: PageTemplate, page: fitz.Page) -> None:
        """Place the template's content on a page at the configured offset."""
        if not template.source[template.page_number - 1].get_contents():
            logger.debug(f"Source page {template.page_number} has no content stream, nothing to stamp")
            return

        offset = self.template_offset * self.unit_scale
        if self.adjust_page_size:
            target = fitz.Rect(offset, offset, page.rect.width, page.rect.height)
        else:
            target = fitz.Rect(offset, offset, offset + template.width, offset + template.height)

        page.show_pdf_page(
            target,
            template.source,
            template.page_number - 1,
            keep_proportion=False,
        )

    def decode_objects(self, annotations: PageAnnotations, page_number: int) -> tuple[list[CanvasObject], int]:
        """
        Parse all objects of a page before any of them is drawn.

        Returns:
            Decoded objects in array order and the number of skipped objects

        Raises:
            MalformedAnnotationObject: On a malformed object, or an unknown type
                under the ``error`` policy
            UnsupportedColorFormat: If an object color cannot be decoded
        """
        decoded: list[CanvasObject] = []
        skipped = 0

        for index, raw in enumerate(annotations.objects):
            object_type = object_type_of(raw)
            parser = PARSERS.get(object_type)

            if parser is None:
                if self.unknown_object_policy is UnknownObjectPolicy.ERROR:
                    raise MalformedAnnotationObject(
                        f"Unsupported object type '{object_type}' on page {page_number}",
                        object_type=object_type,
                        details={"page": page_number, "index": index},
                    )
                if self.unknown_object_policy is UnknownObjectPolicy.WARN:
                    logger.warning(f"Skipping unsupported object type '{object_type}' on page {page_number}")
                skipped += 1
                continue

            try:
                decoded.append(parser(raw))
            except (MalformedAnnotationObject, UnsupportedColorFormat) as e:
                e.details.setdefault("page", page_number)
                e.details.setdefault("index", index)
                raise

        return decoded, skipped

    def compose_page(
        self,
        destination: fitz.Document,
        template: PageTemplate,
        annotations: Optional[PageAnnotations] = None,
    ) -> PageCompositionResult:
        """
        Append one annotated page to the destination document.

        Args:
            destination: Output document
            template: Imported source page
            annotations: Canvas objects for this page, if any

        Returns:
            PageCompositionResult for the page
        """
        page = destination.new_page(width=template.width, height=template.height)
        self.stamp(template, page)

        result = PageCompositionResult(
            page_number=template.page_number,
            width=template.width,
            height=template.height,
        )

        if annotations is None or annotations.is_empty:
            return result

        objects, result.objects_skipped = self.decode_objects(annotations, template.page_number)

        ctx = PageDrawContext(page, unit_scale=self.unit_scale)
        for obj in objects:
            self.renderer.render_object(obj, ctx)
            result.objects_rendered += 1

        logger.debug(
            f"Page {template.page_number}: rendered {result.objects_rendered} object(s), "
            f"skipped {result.objects_skipped}"
        )
        return result
