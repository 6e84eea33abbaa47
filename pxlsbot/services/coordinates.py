"""
pxlsbot.services.coordinates — Canvas Coordinate Parsing
=========================================================

Turns ``(x, y[, scale])`` snippets in chat, or ``coords`` command
arguments, into links to that spot on the canvas.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

DEFAULT_SCALE = 20
MAX_COORDINATE = 1_000_000

COORDS_INSIDE_REGEX = re.compile(
    r"([0-9]+)[., ]{1,2}([0-9]+)[., ]{0,2}([0-9]+)?x?", re.IGNORECASE
)
COORDS_FULL_REGEX = re.compile(
    rf"\({COORDS_INSIDE_REGEX.pattern}\)", re.IGNORECASE
)


@dataclass(frozen=True, slots=True)
class Coordinates:
    x: str
    y: str
    scale: str | None = None


def _to_number(value: str | float | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def validate_coordinates(
    x: str | float | None,
    y: str | float | None,
    scale: str | float | None = None,
    maximum: int = MAX_COORDINATE,
) -> bool:
    """Check that x/y are finite, scale is non-zero, and all are ≤ *maximum*.

    A missing or non-numeric scale counts as the default zoom.
    """
    scale_num = _to_number(scale)
    if scale_num is None or math.isnan(scale_num):
        scale_num = DEFAULT_SCALE
    x_num = _to_number(x)
    y_num = _to_number(y)
    if x_num is None or y_num is None:
        return False
    return (
        math.isfinite(x_num)
        and math.isfinite(y_num)
        and scale_num != 0
        and x_num <= maximum
        and y_num <= maximum
        and scale_num <= maximum
    )


def find_coordinates(text: str) -> Coordinates | None:
    """First valid parenthesised ``(x, y[, scale])`` in a chat message."""
    match = COORDS_FULL_REGEX.search(text)
    if match is None:
        return None
    x, y, scale = match.groups()
    if not validate_coordinates(x, y, scale):
        return None
    return Coordinates(x, y, scale)


def parse_coordinate_args(args: list[str]) -> Coordinates | None:
    """Coordinates from ``coords`` command arguments.

    Accepts ``x y [scale]`` or a single ``x,y[,scale]`` token.  A token
    starting with ``(`` is left to the chat listener.
    """
    if not args:
        return None
    if len(args) > 1:
        scale = args[2] if len(args) > 2 and _to_number(args[2]) is not None else None
        if validate_coordinates(args[0], args[1], scale):
            return Coordinates(args[0], args[1], scale)
    first = args[0]
    if "," in first and not first.startswith("("):
        match = COORDS_INSIDE_REGEX.search(first)
        if match is None:
            return None
        x, y, scale = match.groups()
        if validate_coordinates(x, y, scale):
            return Coordinates(x, y, scale)
    return None


def build_coordinates_url(game_url: str, coords: Coordinates) -> str:
    """Link wrapped in ``<…>`` so Discord doesn't unfurl a preview."""
    scale = coords.scale if coords.scale is not None else DEFAULT_SCALE
    return f"<{game_url}/#x={coords.x}&y={coords.y}&scale={scale}>"
