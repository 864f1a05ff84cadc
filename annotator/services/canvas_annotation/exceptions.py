"""
Annotation Errors

Error taxonomy for the annotation pipeline. Every error carries a
human-readable message and a details dictionary that the request boundary
can pass back to the client.
"""

from typing import Any, Dict, Optional


class AnnotationError(Exception):
    """Base error for the annotation pipeline."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SourceNotFound(AnnotationError):
    """The source path does not resolve to a readable PDF."""


class UnsupportedPdfVersion(AnnotationError):
    """The source PDF declares a version above what the compositor accepts."""

    def __init__(self, version: str, max_version: str):
        super().__init__(
            f"PDF version {version} is above the supported maximum {max_version}",
            details={"version": version, "max_version": max_version},
        )
        self.version = version
        self.max_version = max_version


class MalformedAnnotationObject(AnnotationError):
    """An annotation document or canvas object failed schema validation."""

    def __init__(
        self,
        message: str,
        object_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.object_type = object_type


class UnsupportedColorFormat(AnnotationError):
    """A color value is neither a known name nor three numeric channels."""

    def __init__(self, value: Any):
        super().__init__(f"Unsupported color format: {value!r}", details={"value": repr(value)})
        self.value = value


class CompositionFailure(AnnotationError):
    """The PDF engine failed while composing the output document."""


class FileTooLarge(AnnotationError):
    """An annotated file is empty or exceeds the store's size limit."""

    def __init__(self, size: int, max_bytes: int):
        super().__init__(
            f"Annotated file size {size} bytes is outside the allowed range (max {max_bytes})",
            details={"size": size, "max_bytes": max_bytes},
        )
        self.size = size
        self.max_bytes = max_bytes


class NormalizationFailure(AnnotationError):
    """The version normalizer could not convert the source PDF."""
