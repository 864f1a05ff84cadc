"""
Canvas Annotation Service

This module overlays annotations drawn in the browser canvas editor
(freehand paths, text boxes, highlight rectangles) onto an existing PDF.

Components:
- ColorCodec: Decodes canvas color values into RGB channels
- ObjectParsers: Validate and normalize path, text and rectangle objects
- PageDrawContext: Explicit per-page drawing state
- AnnotationRenderer: Draws decoded objects with the right primitive
- PageCompositor: Stamps each source page as a template and draws its objects
- DocumentAssembler: Main orchestrator that composes the whole document
"""

from .exceptions import (
    AnnotationError,
    SourceNotFound,
    UnsupportedPdfVersion,
    MalformedAnnotationObject,
    UnsupportedColorFormat,
    CompositionFailure,
    FileTooLarge,
    NormalizationFailure,
)
from .color_codec import decode_color, to_unit_rgb
from .models import (
    AnnotationDocument,
    PageAnnotations,
    Orientation,
    ObjectType,
    PathObject,
    TextObject,
    RectObject,
)
from .object_parsers import parse_path, parse_text, parse_rectangle
from .draw_context import PageDrawContext, DrawState
from .annotation_renderer import AnnotationRenderer, AnnotationStyle
from .page_compositor import PageCompositor, PageTemplate, PageCompositionResult, UnknownObjectPolicy
from .document_assembler import (
    AnnotatedDocument,
    DocumentAssembler,
    build_annotated_document,
    load_annotation_document,
)
from .pdf_version import read_pdf_version, ensure_supported_version
from .collaborators import FileKey, FileStore, VersionNormalizer

__all__ = [
    "AnnotationError",
    "SourceNotFound",
    "UnsupportedPdfVersion",
    "MalformedAnnotationObject",
    "UnsupportedColorFormat",
    "CompositionFailure",
    "FileTooLarge",
    "NormalizationFailure",
    "decode_color",
    "to_unit_rgb",
    "AnnotationDocument",
    "PageAnnotations",
    "Orientation",
    "ObjectType",
    "PathObject",
    "TextObject",
    "RectObject",
    "parse_path",
    "parse_text",
    "parse_rectangle",
    "PageDrawContext",
    "DrawState",
    "AnnotationRenderer",
    "AnnotationStyle",
    "PageCompositor",
    "PageTemplate",
    "PageCompositionResult",
    "UnknownObjectPolicy",
    "AnnotatedDocument",
    "DocumentAssembler",
    "build_annotated_document",
    "load_annotation_document",
    "read_pdf_version",
    "ensure_supported_version",
    "FileKey",
    "FileStore",
    "VersionNormalizer",
]
