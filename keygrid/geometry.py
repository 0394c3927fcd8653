# keygrid/geometry.py
"""
Physical key geometry.

Resolves each key's rotated center and local axes, and provides the polygon
helpers used for bounding boxes, overlap detection and rendering.

Key rotation model:
  - x, y: top-left position before rotation (units)
  - w, h: width and height (units)
  - r: rotation in degrees, clockwise on screen (y grows downwards)
  - rx, ry: rotation origin; when absent the key's own (x, y) is used.
    An explicit 0 is a real origin, not a missing value.
"""
import math
from typing import List, Sequence, Tuple
import logging

import numpy as np

from keygrid.utils.config import KeyInfo

logger = logging.getLogger(__name__)

BoundingBox = Tuple[np.ndarray, np.ndarray]


def rotation_origin(key) -> np.ndarray:
    """Effective rotation origin of a key."""
    rx = getattr(key, 'rx', None)
    ry = getattr(key, 'ry', None)
    return np.array([key.x if rx is None else rx,
                     key.y if ry is None else ry], dtype=float)


def rotate_point(point, origin, angle_deg: float) -> np.ndarray:
    """Rotate point around origin by angle_deg (positive = clockwise on screen)."""
    rad = math.radians(angle_deg)
    cos, sin = math.cos(rad), math.sin(rad)
    dx = point[0] - origin[0]
    dy = point[1] - origin[1]
    return np.array([origin[0] + dx * cos - dy * sin,
                     origin[1] + dx * sin + dy * cos], dtype=float)


def key_center(key) -> np.ndarray:
    """Center of a key after rotation."""
    local_center = (key.x + key.w / 2, key.y + key.h / 2)
    return rotate_point(local_center, rotation_origin(key), key.r)


def resolve_key_geometry(index: int, key) -> KeyInfo:
    """
    Compute the rotated center and local axes of one key.

    Args:
        index: Position of the key in the input sequence
        key: Object exposing x, y, w, h, r and optionally rx, ry

    Returns:
        KeyInfo with empty neighbor slots
    """
    rad = math.radians(key.r)
    cos, sin = math.cos(rad), math.sin(rad)
    return KeyInfo(
        index=index,
        center=key_center(key),
        local_right=np.array([cos, sin]),
        local_down=np.array([-sin, cos]),
    )


def resolve_layout_geometry(keys: Sequence) -> List[KeyInfo]:
    """Resolve geometry for every key, indexed by input position."""
    return [resolve_key_geometry(i, key) for i, key in enumerate(keys)]


def key_polygon(key, inset: float = 0.0) -> np.ndarray:
    """
    Four rotated corners of a key, clockwise from the top-left, shape (4, 2).

    Args:
        key: Key geometry
        inset: Shrink each edge inwards by this many units
    """
    left, top = key.x + inset, key.y + inset
    right, bottom = key.x + key.w - inset, key.y + key.h - inset
    origin = rotation_origin(key)
    corners = [(left, top), (right, top), (right, bottom), (left, bottom)]
    return np.array([rotate_point(c, origin, key.r) for c in corners])


def bounding_box(points: np.ndarray) -> BoundingBox:
    """Min and max corners enclosing a set of points."""
    points = np.asarray(points, dtype=float).reshape(-1, 2)
    return points.min(axis=0), points.max(axis=0)


def keys_bounding_box(keys: Sequence) -> BoundingBox:
    """Bounding box enclosing all key polygons."""
    if not keys:
        return np.zeros(2), np.zeros(2)
    return bounding_box(np.concatenate([key_polygon(k) for k in keys]))


def _project(polygon: np.ndarray, axis: np.ndarray) -> Tuple[float, float]:
    projections = polygon @ axis
    return projections.min(), projections.max()


def polygons_intersect(poly_a: np.ndarray, poly_b: np.ndarray) -> bool:
    """Separating axis test for two convex polygons; touching counts as intersecting."""
    for polygon in (poly_a, poly_b):
        for i in range(len(polygon)):
            edge = polygon[(i + 1) % len(polygon)] - polygon[i]
            normal = np.array([-edge[1], edge[0]])
            min_a, max_a = _project(poly_a, normal)
            min_b, max_b = _project(poly_b, normal)
            if max_a < min_b or max_b < min_a:
                return False
    return True


def find_overlapping_keys(keys: Sequence, tolerance: float = 0.05) -> List[Tuple[int, int]]:
    """
    Find pairs of keys whose footprints overlap.

    Each polygon is inset by tolerance so that keys sharing an edge are
    not reported.

    Returns:
        Sorted list of (i, j) index pairs with i < j
    """
    polygons = [key_polygon(k, inset=tolerance) for k in keys]
    overlaps = []
    for i in range(len(polygons)):
        for j in range(i + 1, len(polygons)):
            if polygons_intersect(polygons[i], polygons[j]):
                overlaps.append((i, j))
    if overlaps:
        logger.debug(f"Found {len(overlaps)} overlapping key pairs")
    return overlaps
