"""
Floating-edge geometry.

Pure functions over axis-aligned node boxes. Given two boxes, compute where the
line between their centers crosses each perimeter, which side of the box that
point sits on, and a cubic bezier between the two points whose control handles
leave each box along that side's normal.

Nothing here knows about the rendering surface: inputs are plain numbers and
outputs are plain points and SVG path strings. Results are never cached; edges
are recomputed on every pass so a node being dragged never shows a stale edge.
"""
from __future__ import annotations

import math
from typing import NamedTuple, Optional, Tuple

from .Types import Side

# Pixel slack used when deciding which side a perimeter point sits on.
SIDE_TOLERANCE = 1
DEFAULT_CURVATURE = 0.25


class Point(NamedTuple):
    x: float
    y: float


class Box(NamedTuple):
    """Top-left corner plus measured size of a node."""
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def is_measured(self) -> bool:
        return self.width > 0 and self.height > 0


class EdgeParams(NamedTuple):
    source: Point
    target: Point
    source_side: Side
    target_side: Side


class BezierPath(NamedTuple):
    path: str
    label_x: float
    label_y: float
    offset_x: float
    offset_y: float


class EdgePath(NamedTuple):
    path: str
    source: Point
    target: Point
    source_side: Side
    target_side: Side
    label: Point


def _js_round(value: float) -> int:
    # Half rounds up, matching the canvas' pixel snapping.
    return math.floor(value + 0.5)


def node_intersection(box: Box, other: Box) -> Point:
    """
    Return the point where the segment from ``box``'s center towards
    ``other``'s center leaves ``box``.

    The direction is rotated into a box-normalised diamond space, scaled so
    the larger axis lands on the unit diamond, then mapped back. For an
    axis-aligned rectangle this lands exactly on the perimeter without any
    branching on which side is hit.

    Raises ZeroDivisionError when the two centers coincide; callers that can
    hit that case go through floating_edge().
    """
    w = box.width / 2
    h = box.height / 2

    x2 = box.x + w
    y2 = box.y + h
    x1, y1 = other.center

    xx1 = (x1 - x2) / (2 * w) - (y1 - y2) / (2 * h)
    yy1 = (x1 - x2) / (2 * w) + (y1 - y2) / (2 * h)
    a = 1 / (abs(xx1) + abs(yy1))
    xx3 = a * xx1
    yy3 = a * yy1
    x = w * (xx3 + yy3) + x2
    y = h * (-xx3 + yy3) + y2

    return Point(x, y)


def edge_side(box: Box, point: Point, tolerance: float = SIDE_TOLERANCE) -> Side:
    """Classify which side of ``box`` the perimeter ``point`` lies on."""
    nx = _js_round(box.x)
    ny = _js_round(box.y)
    px = _js_round(point.x)
    py = _js_round(point.y)

    if px <= nx + tolerance:
        return Side.LEFT
    if px >= nx + box.width - tolerance:
        return Side.RIGHT
    if py <= ny + tolerance:
        return Side.TOP
    if py >= ny + box.height - tolerance:
        return Side.BOTTOM

    return Side.TOP


def edge_params(source: Box, target: Box) -> EdgeParams:
    source_point = node_intersection(source, target)
    target_point = node_intersection(target, source)

    return EdgeParams(
        source=source_point,
        target=target_point,
        source_side=edge_side(source, source_point),
        target_side=edge_side(target, target_point),
    )


def _control_offset(distance: float, curvature: float) -> float:
    if distance >= 0:
        return 0.5 * distance
    return curvature * 25 * math.sqrt(-distance)


def _control_point(side: Side, x1: float, y1: float, x2: float, y2: float, curvature: float) -> Tuple[float, float]:
    if side == Side.LEFT:
        return x1 - _control_offset(x1 - x2, curvature), y1
    if side == Side.RIGHT:
        return x1 + _control_offset(x2 - x1, curvature), y1
    if side == Side.TOP:
        return x1, y1 - _control_offset(y1 - y2, curvature)
    return x1, y1 + _control_offset(y2 - y1, curvature)


def _fmt(value: float) -> str:
    # Integral floats print without the trailing ".0" so paths stay compact.
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def bezier_path(
    source_x: float,
    source_y: float,
    target_x: float,
    target_y: float,
    source_side: Side = Side.BOTTOM,
    target_side: Side = Side.TOP,
    curvature: float = DEFAULT_CURVATURE,
) -> BezierPath:
    """
    Cubic bezier from source to target. Each control handle extends along the
    normal of its side: half the gap when the other end lies ahead of that
    side, a curvature-scaled square-root bulge when it lies behind.
    """
    scx, scy = _control_point(source_side, source_x, source_y, target_x, target_y, curvature)
    tcx, tcy = _control_point(target_side, target_x, target_y, source_x, source_y, curvature)

    # Midpoint of the cubic (t = 0.5) for labels.
    label_x = source_x * 0.125 + scx * 0.375 + tcx * 0.375 + target_x * 0.125
    label_y = source_y * 0.125 + scy * 0.375 + tcy * 0.375 + target_y * 0.125

    path = (
        f"M{_fmt(source_x)},{_fmt(source_y)} "
        f"C{_fmt(scx)},{_fmt(scy)} {_fmt(tcx)},{_fmt(tcy)} {_fmt(target_x)},{_fmt(target_y)}"
    )
    return BezierPath(
        path=path,
        label_x=label_x,
        label_y=label_y,
        offset_x=abs(label_x - source_x),
        offset_y=abs(label_y - source_y),
    )


def floating_edge(source: Optional[Box], target: Optional[Box]) -> Optional[EdgePath]:
    """
    Full edge geometry between two node boxes, or None when the edge cannot be
    drawn this pass (an endpoint is missing or unmeasured, or both boxes share
    a center so there is no direction to follow).
    """
    if source is None or target is None:
        return None
    if not source.is_measured() or not target.is_measured():
        return None
    if source.center == target.center:
        return None

    params = edge_params(source, target)
    bezier = bezier_path(
        params.source.x,
        params.source.y,
        params.target.x,
        params.target.y,
        source_side=params.source_side,
        target_side=params.target_side,
    )
    return EdgePath(
        path=bezier.path,
        source=params.source,
        target=params.target,
        source_side=params.source_side,
        target_side=params.target_side,
        label=Point(bezier.label_x, bezier.label_y),
    )
