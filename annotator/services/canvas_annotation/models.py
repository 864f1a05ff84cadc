"""
Annotation Models

Pydantic schemas for the annotation payload sent by the canvas editor,
and the normalized records the object parsers produce from it.

Payload shape:
    {
        "page_setup": {"orientation": "portrait" | "landscape"},
        "pages": [
            [{"objects": [{"type": "path", ...}, {"type": "rect", ...}]}],
            [],
            ...
        ]
    }
"""

from enum import Enum
from typing import Any, NamedTuple, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .color_codec import RGB


class Orientation(str, Enum):
    """Page orientation of the output document."""

    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class ObjectType(str, Enum):
    """Canvas object kinds the renderer knows how to draw."""

    PATH = "path"
    TEXT = "i-text"
    RECT = "rect"


# =============================================================================
# Payload schema
# =============================================================================

class PageSetup(BaseModel):
    """Document-level page setup."""

    model_config = ConfigDict(extra="ignore")

    orientation: Orientation = Orientation.PORTRAIT

    @field_validator("orientation", mode="before")
    @classmethod
    def normalize_orientation(cls, value: Any) -> Any:
        if value is None:
            return Orientation.PORTRAIT
        if isinstance(value, str):
            value = value.strip().lower()
            return {"p": "portrait", "l": "landscape"}.get(value, value)
        return value


class PageAnnotations(BaseModel):
    """Annotations of one page. An empty object list means nothing to draw."""

    model_config = ConfigDict(extra="ignore")

    objects: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("objects", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def is_empty(self) -> bool:
        return not self.objects


class AnnotationDocument(BaseModel):
    """Top-level annotation payload for one source PDF."""

    model_config = ConfigDict(extra="ignore")

    page_setup: PageSetup = Field(default_factory=PageSetup)
    pages: list[PageAnnotations] = Field(default_factory=list)

    @field_validator("page_setup", mode="before")
    @classmethod
    def default_page_setup(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("pages", mode="before")
    @classmethod
    def unwrap_pages(cls, value: Any) -> Any:
        """
        Normalize each page entry to a single wrapper.

        The editor wraps each page's objects in a zero-or-one element list;
        a bare wrapper dict, an empty list, or null are accepted as well.
        """
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("pages must be a list")

        pages = []
        for index, entry in enumerate(value):
            if entry is None:
                pages.append({})
            elif isinstance(entry, list):
                if len(entry) > 1:
                    raise ValueError(
                        f"page {index + 1} has {len(entry)} object wrappers, expected at most one"
                    )
                pages.append(entry[0] if entry else {})
            else:
                pages.append(entry)
        return pages

    def page(self, page_number: int) -> PageAnnotations:
        """Annotations for a 1-based page number; empty when none were sent."""
        if 1 <= page_number <= len(self.pages):
            return self.pages[page_number - 1]
        return PageAnnotations()


# =============================================================================
# Canvas object schemas
# =============================================================================

class CanvasObjectSpec(BaseModel):
    """Fields shared by every canvas object."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: str
    left: float = Field(validation_alias=AliasChoices("left", "x"))
    top: float = Field(validation_alias=AliasChoices("top", "y"))
    scale_x: Optional[float] = Field(default=None, validation_alias=AliasChoices("scaleX", "scale_x"))
    scale_y: Optional[float] = Field(default=None, validation_alias=AliasChoices("scaleY", "scale_y"))

    @property
    def sx(self) -> float:
        return 1.0 if self.scale_x is None else self.scale_x

    @property
    def sy(self) -> float:
        return 1.0 if self.scale_y is None else self.scale_y


class PathSpec(CanvasObjectSpec):
    """Freehand path drawn with the pencil brush."""

    path: Union[str, list[list[Any]]]
    stroke: Optional[Any] = None
    stroke_width: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("strokeWidth", "stroke_width")
    )


class TextSpec(CanvasObjectSpec):
    """Editable text box."""

    text: str
    width: Optional[float] = None
    height: Optional[float] = None
    fill: Optional[Any] = None
    font_size: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("fontSize", "font_size")
    )


class RectSpec(CanvasObjectSpec):
    """Highlight rectangle."""

    width: float
    height: float
    fill: Optional[Any] = None


# =============================================================================
# Normalized records
# =============================================================================

class PathObject(NamedTuple):
    """Absolute polyline points and the decoded stroke color."""

    points: list[tuple[float, float]]
    stroke_color: RGB


class TextObject(NamedTuple):
    """Text box anchored at its top-left corner."""

    x: float
    y: float
    width: float
    height: float
    text: str
    color: RGB
    font_size: float


class RectObject(NamedTuple):
    """Filled rectangle anchored at its top-left corner."""

    x: float
    y: float
    width: float
    height: float
    fill_color: RGB


CanvasObject = Union[PathObject, TextObject, RectObject]
