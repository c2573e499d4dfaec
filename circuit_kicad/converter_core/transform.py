"""
Coordinate transforms between Circuit JSON and KiCad.

Circuit JSON measures in millimetres with Y pointing up; KiCad sheets and
boards put Y pointing down and use their own origin. Transforms are 2D
affine matrices stored as ``(a, b, c, d, e, f)`` for

    | a c e |
    | b d f |
    | 0 0 1 |

so a point maps to ``(a*x + c*y + e, b*x + d*y + f)``. ``compose(m1, m2)``
applies ``m2`` first, matching the usual matrix product ``m1 @ m2``.
"""

import math
from typing import Dict, Iterable, Optional, Tuple

from .. import config

Matrix = Tuple[float, float, float, float, float, float]
Point = Tuple[float, float]

IDENTITY: Matrix = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


def translate(tx: float, ty: float) -> Matrix:
    return (1.0, 0.0, 0.0, 1.0, float(tx), float(ty))


def scale(sx: float, sy: Optional[float] = None) -> Matrix:
    return (float(sx), 0.0, 0.0, float(sx if sy is None else sy), 0.0, 0.0)


def rotate_degrees(degrees: float) -> Matrix:
    radians = math.radians(degrees)
    cos_r = math.cos(radians)
    sin_r = math.sin(radians)
    # Snap to exact values so right angles do not leave 1e-17 residue
    cos_r = round(cos_r) if abs(cos_r - round(cos_r)) < 1e-12 else cos_r
    sin_r = round(sin_r) if abs(sin_r - round(sin_r)) < 1e-12 else sin_r
    return (cos_r, sin_r, -sin_r, cos_r, 0.0, 0.0)


def compose(*matrices: Matrix) -> Matrix:
    """
    Multiply matrices left to right.

    The rightmost matrix is applied to points first, so
    ``compose(translate(...), scale(...))`` scales then translates.
    """
    result = IDENTITY
    for m in matrices:
        a1, b1, c1, d1, e1, f1 = result
        a2, b2, c2, d2, e2, f2 = m
        result = (
            a1 * a2 + c1 * b2,
            b1 * a2 + d1 * b2,
            a1 * c2 + c1 * d2,
            b1 * c2 + d1 * d2,
            a1 * e2 + c1 * f2 + e1,
            b1 * e2 + d1 * f2 + f1,
        )
    return result


def apply_to_point(matrix: Matrix, point: Point) -> Point:
    a, b, c, d, e, f = matrix
    x, y = point
    return (a * x + c * y + e, b * x + d * y + f)


def convert_rotation(degrees: float) -> float:
    """
    Convert a Circuit JSON rotation into the sheet's rotation convention.

    The axis flip reverses the sense of rotation, so the sign flips while
    the magnitude is preserved.
    """
    if not degrees:
        return 0.0
    return -float(degrees)


def pcb_transform() -> Matrix:
    """Board transform: flip Y, then move the origin into the drawing area."""
    ox, oy = config.PCB_ORIGIN_OFFSET
    return compose(translate(ox, oy), scale(1, -1))


def schematic_transform(center: Point, paper_size: Tuple[float, float],
                        unit_scale: float = config.SCHEMATIC_SCALE) -> Matrix:
    """
    Sheet transform: centre the content, scale to millimetres, flip Y and
    move the content centre onto the middle of the paper.

    Args:
        center: Centre of the placed content in Circuit JSON units
        paper_size: (width, height) of the selected paper in millimetres
        unit_scale: Millimetres per Circuit JSON schematic unit
    """
    width, height = paper_size
    cx, cy = center
    return compose(
        translate(width / 2, height / 2),
        scale(unit_scale, -unit_scale),
        translate(-cx, -cy),
    )


def bounds_of_points(points: Iterable[Point]) -> Dict[str, float]:
    """
    Bounding box of a set of points.

    Empty input yields a zero-sized box at the origin instead of
    infinite extents.
    """
    pts = list(points)
    if not pts:
        return {"min_x": 0.0, "min_y": 0.0, "max_x": 0.0, "max_y": 0.0}
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    return {"min_x": min(xs), "min_y": min(ys), "max_x": max(xs), "max_y": max(ys)}


def bounds_center(bounds: Dict[str, float]) -> Point:
    return (
        (bounds["min_x"] + bounds["max_x"]) / 2,
        (bounds["min_y"] + bounds["max_y"]) / 2,
    )
