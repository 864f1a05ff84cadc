"""
Object Parsers

Decoders for the three canvas object kinds. Each parser validates a raw
object record against its schema and returns a normalized record with
absolute, top-left anchored geometry in canvas units.
"""

import logging
import math
import re
from typing import Any, Iterable, Iterator, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .color_codec import decode_color
from .exceptions import MalformedAnnotationObject
from .models import (
    PathObject,
    PathSpec,
    RectObject,
    RectSpec,
    TextObject,
    TextSpec,
)

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "black"

# fabric.js IText default font size
DEFAULT_FONT_SIZE = 40.0

# Number of parameters consumed by one repetition of each path command
COMMAND_ARITY = {
    "M": 2, "L": 2, "T": 2,
    "H": 1, "V": 1,
    "Q": 4, "S": 4,
    "C": 6,
    "A": 7,
    "Z": 0,
}

_PATH_TOKEN = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?|[A-Za-z]")

SpecT = TypeVar("SpecT", bound=BaseModel)


def _validate(spec_cls: Type[SpecT], obj: Mapping[str, Any]) -> SpecT:
    """Validate a raw object record, converting schema errors."""
    object_type = obj.get("type") if isinstance(obj, Mapping) else None
    try:
        return spec_cls.model_validate(obj)
    except ValidationError as e:
        fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise MalformedAnnotationObject(
            f"Invalid {object_type or 'canvas'} object: {', '.join(fields) or e}",
            object_type=object_type,
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e


def _path_commands(path: Any) -> list[list[Any]]:
    """Split an SVG path string into command lists; pass command arrays through."""
    if not isinstance(path, str):
        return path

    commands: list[list[Any]] = []
    for token in _PATH_TOKEN.findall(path):
        if token.isalpha():
            commands.append([token])
        elif commands:
            commands[-1].append(token)
        else:
            raise ValueError("path data must start with a command")
    return commands


def _path_segments(
    commands: Iterable[list[Any]],
) -> Iterator[tuple[str, tuple[float, float], list[tuple[float, float]]]]:
    """
    Walk path commands, resolving relative and H/V coordinates.

    Yields:
        ``(op, start, pairs)`` per command repetition: the upper-case command
        letter, the current point before it, and the absolute coordinate
        pairs it carries (the last pair is the new current point)

    Raises:
        ValueError: On an unknown command or a wrong parameter count
    """
    cx = cy = 0.0
    sx = sy = 0.0

    for command in commands:
        if not command or not isinstance(command[0], str):
            raise ValueError(f"invalid path command: {command!r}")

        letter = command[0]
        op = letter.upper()
        relative = letter != op
        if op not in COMMAND_ARITY:
            raise ValueError(f"unknown path command: {letter!r}")

        params = [float(v) for v in command[1:]]
        arity = COMMAND_ARITY[op]

        if arity == 0:
            cx, cy = sx, sy
            continue
        if not params or len(params) % arity:
            raise ValueError(f"path command {letter!r} expects a multiple of {arity} values")

        for start in range(0, len(params), arity):
            group = params[start:start + arity]
            ox, oy = (cx, cy) if relative else (0.0, 0.0)

            if op == "H":
                pairs = [(group[0] + ox, cy)]
            elif op == "V":
                pairs = [(cx, group[0] + oy)]
            elif op == "A":
                pairs = [(group[5] + ox, group[6] + oy)]
            else:
                pairs = [(group[i] + ox, group[i + 1] + oy) for i in range(0, arity, 2)]

            yield op, (cx, cy), pairs
            cx, cy = pairs[-1]
            if op == "M" and start == 0:
                sx, sy = cx, cy


def flatten_path(commands: Iterable[list[Any]]) -> list[tuple[float, float]]:
    """
    Flatten path commands into the ordered coordinate pairs they carry.

    Every coordinate pair of a command is emitted (control points included),
    lower-case commands are resolved against the current point, and H/V use
    the current point for the missing axis. Arcs contribute their end point.

    Args:
        commands: Sequence of ``[letter, *numbers]`` lists

    Returns:
        Absolute points in path coordinates

    Raises:
        ValueError: On an unknown command or a wrong parameter count
    """
    return [point for _, _, pairs in _path_segments(commands) for point in pairs]


def _quadratic_extrema(p0: float, p1: float, p2: float) -> list[float]:
    denom = p0 - 2 * p1 + p2
    if denom == 0:
        return []
    t = (p0 - p1) / denom
    if not 0 < t < 1:
        return []
    return [(1 - t) ** 2 * p0 + 2 * (1 - t) * t * p1 + t ** 2 * p2]


def _cubic_extrema(p0: float, p1: float, p2: float, p3: float) -> list[float]:
    # Roots of the derivative a*t^2 + b*t + c
    d0, d1, d2 = p1 - p0, p2 - p1, p3 - p2
    a = d0 - 2 * d1 + d2
    b = 2 * (d1 - d0)
    c = d0

    if abs(a) < 1e-12:
        roots = [-c / b] if b else []
    else:
        disc = b * b - 4 * a * c
        if disc < 0:
            return []
        root = math.sqrt(disc)
        roots = [(-b + root) / (2 * a), (-b - root) / (2 * a)]

    return [
        (1 - t) ** 3 * p0 + 3 * (1 - t) ** 2 * t * p1 + 3 * (1 - t) * t ** 2 * p2 + t ** 3 * p3
        for t in roots
        if 0 < t < 1
    ]


def path_origin(commands: Iterable[list[Any]]) -> Optional[tuple[float, float]]:
    """
    Top-left corner of the drawn curve's bounding box.

    Control points only count through the curve they shape: quadratic and
    cubic segments contribute their on-curve extremes. Smooth (S/T) and arc
    segments contribute their end points only.

    Returns:
        ``(min_x, min_y)``, or None for a path without points
    """
    xs: list[float] = []
    ys: list[float] = []

    for op, (x0, y0), pairs in _path_segments(commands):
        x_end, y_end = pairs[-1]
        xs.append(x_end)
        ys.append(y_end)

        if op == "Q":
            (x1, y1), _ = pairs
            xs.extend(_quadratic_extrema(x0, x1, x_end))
            ys.extend(_quadratic_extrema(y0, y1, y_end))
        elif op == "C":
            (x1, y1), (x2, y2), _ = pairs
            xs.extend(_cubic_extrema(x0, x1, x2, x_end))
            ys.extend(_cubic_extrema(y0, y1, y2, y_end))

    if not xs:
        return None
    return min(xs), min(ys)


def parse_path(obj: Mapping[str, Any]) -> PathObject:
    """
    Decode a freehand path object.

    The path's points are anchored to the object's top-left box: the top-left
    corner of the curve's bounding box lands on ``left``/``top`` plus half the
    stroke width, which is how the canvas positions a path.

    Args:
        obj: Raw canvas object with left, top, path and optional stroke fields

    Returns:
        PathObject with absolute points and the decoded stroke color

    Raises:
        MalformedAnnotationObject: If required fields are missing or the path
            data cannot be read
        UnsupportedColorFormat: If the stroke color cannot be decoded
    """
    spec = _validate(PathSpec, obj)
    stroke = decode_color(spec.stroke or DEFAULT_COLOR)

    try:
        commands = _path_commands(spec.path)
        raw_points = flatten_path(commands)
        origin = path_origin(commands)
    except (ValueError, TypeError, IndexError) as e:
        raise MalformedAnnotationObject(
            f"Invalid path data: {e}", object_type=spec.type, details={"path": repr(spec.path)[:200]}
        ) from e

    if origin is None:
        return PathObject(points=[], stroke_color=stroke)

    half_stroke = (spec.stroke_width or 0.0) / 2.0
    min_x, min_y = origin
    origin_x = spec.left + half_stroke
    origin_y = spec.top + half_stroke

    points = [
        (origin_x + (x - min_x) * spec.sx, origin_y + (y - min_y) * spec.sy)
        for x, y in raw_points
    ]
    return PathObject(points=points, stroke_color=stroke)


def parse_text(obj: Mapping[str, Any]) -> TextObject:
    """Decode a text object into position, box size, content, color and font size."""
    spec = _validate(TextSpec, obj)
    return TextObject(
        x=spec.left,
        y=spec.top,
        width=(spec.width or 0.0) * spec.sx,
        height=(spec.height or 0.0) * spec.sy,
        text=spec.text,
        color=decode_color(spec.fill or DEFAULT_COLOR),
        font_size=(spec.font_size or DEFAULT_FONT_SIZE) * spec.sy,
    )


def parse_rectangle(obj: Mapping[str, Any]) -> RectObject:
    """Decode a highlight rectangle."""
    spec = _validate(RectSpec, obj)
    return RectObject(
        x=spec.left,
        y=spec.top,
        width=spec.width * spec.sx,
        height=spec.height * spec.sy,
        fill_color=decode_color(spec.fill or DEFAULT_COLOR),
    )


def object_type_of(obj: Any) -> str:
    """Return the ``type`` tag of a raw object, validating only that field."""
    if not isinstance(obj, Mapping) or not isinstance(obj.get("type"), str):
        raise MalformedAnnotationObject(
            "Canvas object has no type tag", details={"object": repr(obj)[:200]}
        )
    return obj["type"]


__all__ = [
    "flatten_path",
    "path_origin",
    "object_type_of",
    "parse_path",
    "parse_rectangle",
    "parse_text",
]
