"""
Document Assembler

Top-level orchestration of the annotation pipeline: validates the
annotation payload, checks the source PDF, and composes every source page
in order into a new document.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

import fitz  # PyMuPDF
from pydantic import ValidationError

from annotator.config import Settings, get_settings

from .annotation_renderer import AnnotationRenderer, AnnotationStyle
from .exceptions import (
    AnnotationError,
    CompositionFailure,
    MalformedAnnotationObject,
    SourceNotFound,
)
from .models import AnnotationDocument, Orientation
from .page_compositor import PageCompositionResult, PageCompositor
from .pdf_version import ensure_supported_version

logger = logging.getLogger(__name__)

AnnotationPayload = Union[AnnotationDocument, dict, str, bytes]


@dataclass
class AnnotatedDocument:
    """
    A finished annotated PDF held in memory.

    The caller owns the document and must close it (or use it as a context
    manager) once it has been serialized.
    """

    document: fitz.Document
    orientation: Orientation
    source_path: Path
    pages: list[PageCompositionResult] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return self.document.page_count

    @property
    def objects_rendered(self) -> int:
        return sum(p.objects_rendered for p in self.pages)

    def to_bytes(self) -> bytes:
        """Serialize the document to PDF bytes."""
        try:
            return self.document.tobytes(garbage=3, deflate=True)
        except (RuntimeError, ValueError) as e:
            raise CompositionFailure(f"Failed to serialize annotated PDF: {e}") from e

    def save(self, output_path: Path | str) -> Path:
        """Write the document to a file and return its path."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.document.save(output_path, garbage=4, deflate=True)
        except (RuntimeError, ValueError) as e:
            raise CompositionFailure(f"Failed to save annotated PDF to {output_path}: {e}") from e
        return output_path

    def close(self) -> None:
        if not self.document.is_closed:
            self.document.close()

    def __enter__(self) -> "AnnotatedDocument":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def load_annotation_document(payload: AnnotationPayload) -> AnnotationDocument:
    """
    Decode and validate an annotation payload.

    Args:
        payload: Parsed JSON dict, raw JSON text, or an AnnotationDocument

    Returns:
        Validated AnnotationDocument

    Raises:
        MalformedAnnotationObject: If the payload is not valid JSON or does not
            match the annotation schema
    """
    if isinstance(payload, AnnotationDocument):
        return payload

    try:
        if isinstance(payload, (str, bytes)):
            return AnnotationDocument.model_validate_json(payload)
        return AnnotationDocument.model_validate(payload)
    except ValidationError as e:
        raise MalformedAnnotationObject(
            f"Invalid annotation document: {e.error_count()} error(s)",
            details={"errors": json.loads(e.json(include_url=False))},
        ) from e


class DocumentAssembler:
    """
    Builds an annotated copy of a source PDF.

    Orientation is fixed for the whole output when the assembler is created;
    every page keeps its source width and height.
    """

    def __init__(
        self,
        orientation: Orientation | str = Orientation.PORTRAIT,
        settings: Optional[Settings] = None,
        compositor: Optional[PageCompositor] = None,
    ):
        """
        Initialize the document assembler.

        Args:
            orientation: Document orientation from the payload's page setup
            settings: Application settings (defaults to the cached settings)
            compositor: Page compositor (built from settings when omitted)
        """
        self.orientation = Orientation(orientation)
        self.settings = settings or get_settings()
        self.compositor = compositor or PageCompositor(
            renderer=AnnotationRenderer(AnnotationStyle.from_settings(self.settings)),
            unit_scale=self.settings.unit_scale,
            template_offset=self.settings.template_offset,
            adjust_page_size=self.settings.adjust_page_size,
            unknown_object_policy=self.settings.unknown_object_policy,
        )

    def _open_source(self, source_path: Path) -> fitz.Document:
        if not source_path.is_file():
            raise SourceNotFound(f"Source PDF not found: {source_path}", details={"path": str(source_path)})

        ensure_supported_version(source_path, self.settings.max_pdf_version)

        try:
            source = fitz.open(source_path)
        except (RuntimeError, ValueError) as e:
            raise SourceNotFound(
                f"Source PDF could not be opened: {source_path}", details={"path": str(source_path)}
            ) from e

        if source.needs_pass:
            source.close()
            raise SourceNotFound(
                f"Source PDF is encrypted: {source_path}", details={"path": str(source_path)}
            )
        return source

    def assemble(self, source_path: Path | str, annotations: AnnotationDocument) -> AnnotatedDocument:
        """
        Compose every source page with its annotations.

        Args:
            source_path: Path to the source PDF (version already normalized)
            annotations: Validated annotation document

        Returns:
            AnnotatedDocument with one page per source page

        Raises:
            SourceNotFound: If the source is missing or unreadable
            UnsupportedPdfVersion: If the source declares a too-new version
            MalformedAnnotationObject: If an object fails validation
            UnsupportedColorFormat: If an object's color cannot be decoded
            CompositionFailure: If the PDF engine fails
        """
        source_path = Path(source_path)
        source = self._open_source(source_path)
        output = fitz.open()

        try:
            page_count = source.page_count
            if len(annotations.pages) > page_count:
                logger.warning(
                    f"Annotation document has {len(annotations.pages)} pages, source has {page_count}; "
                    "extra pages are ignored"
                )

            logger.info(f"Assembling {page_count} page(s) from {source_path.name} ({self.orientation.value})")

            results = []
            for page_number in range(1, page_count + 1):
                template = self.compositor.import_page(source, page_number)
                results.append(
                    self.compositor.compose_page(output, template, annotations.page(page_number))
                )

            self._set_metadata(output)

        except AnnotationError:
            output.close()
            raise
        except (RuntimeError, ValueError) as e:
            output.close()
            logger.error(f"PDF composition failed for {source_path.name}: {e}", exc_info=True)
            raise CompositionFailure(f"PDF composition failed: {e}") from e
        finally:
            source.close()

        logger.info(
            f"Assembled {output.page_count} page(s), "
            f"{sum(r.objects_rendered for r in results)} annotation object(s) rendered"
        )
        return AnnotatedDocument(
            document=output,
            orientation=self.orientation,
            source_path=source_path,
            pages=results,
        )

    def _set_metadata(self, doc: fitz.Document) -> None:
        """Record how the document was produced in the PDF metadata."""
        doc.set_metadata({
            "creator": "Canvas Annotator",
            "producer": "PyMuPDF",
            "subject": f"Annotated copy ({self.orientation.value}, {datetime.now().isoformat(timespec='seconds')})",
        })


def build_annotated_document(
    source_pdf_path: Path | str,
    annotation_json: AnnotationPayload,
    settings: Optional[Settings] = None,
) -> AnnotatedDocument:
    """
    Overlay canvas annotations onto a source PDF.

    Args:
        source_pdf_path: Path to a PDF at or below the supported version
        annotation_json: Annotation payload (dict, JSON text or model)
        settings: Optional settings override

    Returns:
        AnnotatedDocument ready for serialization
    """
    document = load_annotation_document(annotation_json)
    assembler = DocumentAssembler(document.page_setup.orientation, settings=settings)
    return assembler.assemble(source_pdf_path, document)
