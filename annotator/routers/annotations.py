"""
Annotations router for rendering canvas annotations onto uploaded PDFs.

Endpoints:
- POST /render - Return the annotated PDF
- POST /store - Annotate and save the result to the file store
"""

import logging
import shutil
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from annotator.config import Settings, get_settings
from annotator.services.canvas_annotation import (
    AnnotationError,
    CompositionFailure,
    FileKey,
    FileStore,
    FileTooLarge,
    MalformedAnnotationObject,
    NormalizationFailure,
    SourceNotFound,
    UnsupportedColorFormat,
    UnsupportedPdfVersion,
    VersionNormalizer,
    build_annotated_document,
)
from annotator.services.file_store import LocalFileStore

logger = logging.getLogger(__name__)

router = APIRouter()

# Fixed location of annotated essay attachments
COMPONENT = "question"
FILE_AREA = "response_attachments"
FILE_PATH = "/"


# =============================================================================
# Error Mapping
# =============================================================================

ERROR_STATUS = {
    SourceNotFound: 404,
    FileTooLarge: 413,
    UnsupportedPdfVersion: 415,
    MalformedAnnotationObject: 422,
    UnsupportedColorFormat: 422,
    CompositionFailure: 500,
    NormalizationFailure: 500,
}


def status_for(error: AnnotationError) -> int:
    """HTTP status code for an annotation error."""
    for error_type, status in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status
    return 500


async def annotation_error_handler(request: Request, exc: AnnotationError) -> JSONResponse:
    """Translate annotation errors into JSON error responses."""
    status = status_for(exc)
    if status >= 500:
        logger.error(f"Annotation failed for {request.url.path}: {exc.message}")
    else:
        logger.warning(f"Annotation rejected for {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "detail": exc.message, "info": exc.details},
    )


# =============================================================================
# Dependencies
# =============================================================================

def get_file_store(settings: Settings = Depends(get_settings)) -> FileStore:
    """File store used for annotated results."""
    return LocalFileStore(settings.storage_dir, settings.max_file_bytes)


def get_version_normalizer() -> Optional[VersionNormalizer]:
    """
    Version normalizer applied to uploads before annotation.

    None by default: sources above the supported version are rejected.
    Deployments with a converter override this dependency.
    """
    return None


# One build per target file at a time. Entries hold [lock, holders] and are
# dropped when the last holder leaves.
_build_locks: dict[tuple, list] = {}
_build_locks_guard = threading.Lock()


@contextmanager
def _locked(key: tuple) -> Iterator[None]:
    """Hold the build lock of a target file."""
    with _build_locks_guard:
        entry = _build_locks.setdefault(key, [threading.Lock(), 0])
        entry[1] += 1

    try:
        with entry[0]:
            yield
    finally:
        with _build_locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _build_locks[key]


# =============================================================================
# Response Models
# =============================================================================

class StoreResponse(BaseModel):
    """Response model for a stored annotated file."""
    context_id: int
    item_id: int
    file_name: str
    file_size: int
    page_count: int
    objects_rendered: int


# =============================================================================
# Helpers
# =============================================================================

def _spool_upload(file: UploadFile, tmp_dir: Path) -> Path:
    """Copy an uploaded PDF to a temporary file."""
    if file.filename and not file.filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="Only PDF files are accepted")

    tmp_dir.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(dir=tmp_dir, prefix="source_", suffix=".pdf")
    with open(fd, "wb") as out:
        shutil.copyfileobj(file.file, out)
    return Path(name)


def _normalize(normalizer: VersionNormalizer, source: Path) -> Path:
    """Run the version normalizer, reporting converter errors as annotation errors."""
    try:
        return Path(normalizer.normalize(source))
    except AnnotationError:
        raise
    except Exception as e:
        logger.error(f"Version normalization failed for {source.name}: {e}", exc_info=True)
        raise NormalizationFailure(
            f"Could not normalize source PDF: {e}", details={"path": str(source)}
        ) from e


def _render(
    file: UploadFile,
    annotations: str,
    settings: Settings,
    normalizer: Optional[VersionNormalizer],
) -> tuple[bytes, int, int]:
    """Annotate an upload and return (pdf bytes, page count, objects rendered)."""
    source = _spool_upload(file, settings.tmp_dir)
    normalized = source
    try:
        if normalizer is not None:
            normalized = _normalize(normalizer, source)

        with build_annotated_document(normalized, annotations, settings=settings) as annotated:
            return annotated.to_bytes(), annotated.page_count, annotated.objects_rendered
    finally:
        source.unlink(missing_ok=True)
        if normalized != source:
            normalized.unlink(missing_ok=True)


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/render")
def render_annotations(
    file: UploadFile = File(...),
    annotations: str = Form(...),
    settings: Settings = Depends(get_settings),
    normalizer: Optional[VersionNormalizer] = Depends(get_version_normalizer),
):
    """
    Overlay canvas annotations onto an uploaded PDF.

    The annotations field carries the editor's serialized JSON document.
    Returns the annotated PDF.
    """
    pdf_bytes, _, _ = _render(file, annotations, settings, normalizer)

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": 'inline; filename="annotated.pdf"'},
    )


@router.post("/store", response_model=StoreResponse)
def store_annotations(
    file: UploadFile = File(...),
    annotations: str = Form(...),
    context_id: int = Form(...),
    attempt_id: int = Form(...),
    file_name: str = Form(...),
    settings: Settings = Depends(get_settings),
    store: FileStore = Depends(get_file_store),
    normalizer: Optional[VersionNormalizer] = Depends(get_version_normalizer),
):
    """
    Annotate an uploaded PDF and save it over the attempt's attachment.

    Only one build per target file runs at a time.
    """
    key = FileKey(
        context_id=context_id,
        component=COMPONENT,
        file_area=FILE_AREA,
        item_id=attempt_id,
        file_path=FILE_PATH,
        file_name=file_name,
    )

    with _locked(key.as_tuple()):
        pdf_bytes, page_count, objects_rendered = _render(file, annotations, settings, normalizer)
        store.save(key, pdf_bytes)

    logger.info(f"Stored annotated {file_name} for attempt {attempt_id} ({len(pdf_bytes)} bytes)")

    return StoreResponse(
        context_id=context_id,
        item_id=attempt_id,
        file_name=file_name,
        file_size=len(pdf_bytes),
        page_count=page_count,
        objects_rendered=objects_rendered,
    )
