# keygrid/grid.py
"""
Physical to logical layout conversion.

Pipeline:
  1. Resolve rotated centers and local axes (geometry.py)
  2. Cluster keys into columns and rows (clustering.py)
  3. Order clusters by mean center, reserve empty lines at large gaps,
     and number them from 0
  4. Write row/col onto every key and sort the keys by (row, col)

The existing row/col values of the keys are never read, so repeated runs
on the same physical positions give the same assignment. Inputs with
non-finite coordinates are not supported.
"""
from typing import List, MutableSequence, Optional, Sequence
import logging

import numpy as np

from keygrid.utils.config import ThresholdsConfig
from keygrid.geometry import resolve_layout_geometry
from keygrid.clustering import Clusters, build_clusters

logger = logging.getLogger(__name__)


def assign_ordinals(clusters: Clusters,
                    coordinates: Sequence[float],
                    gap_threshold: float) -> List[int]:
    """
    Number clusters in order of their mean coordinate.

    When consecutive clusters are at least one key pitch plus gap_threshold
    apart, one number is skipped to keep the physical gap visible.

    Args:
        clusters: Key-index lists
        coordinates: Coordinate of each key along the axis being numbered
        gap_threshold: Extra distance (units) that reserves an empty line

    Returns:
        Ordinal of each cluster, aligned with clusters
    """
    means = [float(np.mean([coordinates[i] for i in cluster])) for cluster in clusters]
    order = sorted(range(len(clusters)), key=lambda c: means[c])

    ordinals = [0] * len(clusters)
    counter = 0
    previous = None
    for c in order:
        if previous is not None:
            counter += 1
            if means[c] - previous >= 1 + gap_threshold:
                logger.debug(f"Reserving empty line before {means[c]:.2f} (gap {means[c] - previous:.2f})")
                counter += 1
        ordinals[c] = counter
        previous = means[c]
    return ordinals


def physical_to_logical(keys: MutableSequence,
                        thresholds: Optional[ThresholdsConfig] = None) -> MutableSequence:
    """
    Assign logical row/col to every key from its physical geometry.

    The keys are modified in place: row and col are overwritten and the
    sequence is stably reordered by (row, col). The same sequence is
    returned for convenience.

    Args:
        keys: Mutable sequence of objects exposing x, y, w, h, r, optional
            rx/ry, and writable row/col
        thresholds: Heuristic thresholds, defaults when None
    """
    if len(keys) == 0:
        return keys
    thresholds = thresholds or ThresholdsConfig()

    infos = resolve_layout_geometry(keys)
    col_clusters, row_clusters = build_clusters(keys, infos, thresholds)

    x_centers = [info.center[0] for info in infos]
    y_centers = [info.center[1] for info in infos]
    col_numbers = assign_ordinals(col_clusters, x_centers, thresholds.gap_threshold)
    row_numbers = assign_ordinals(row_clusters, y_centers, thresholds.gap_threshold)

    for cluster, number in zip(col_clusters, col_numbers):
        for index in cluster:
            keys[index].col = number
    for cluster, number in zip(row_clusters, row_numbers):
        for index in cluster:
            keys[index].row = number

    keys[:] = sorted(keys, key=lambda k: (k.row, k.col))
    logger.debug(f"Assigned {len(keys)} keys to {len(row_clusters)} rows x {len(col_clusters)} columns")
    return keys


def is_logically_ordered(keys: Sequence) -> bool:
    """True when every key has a row/col and keys strictly increase by (row, col)."""
    for i, key in enumerate(keys):
        if key.row < 0 or key.col < 0:
            return False
        if i > 0 and (key.row, key.col) <= (keys[i - 1].row, keys[i - 1].col):
            return False
    return True


def ensure_logical_layout(keys: MutableSequence,
                          thresholds: Optional[ThresholdsConfig] = None) -> bool:
    """
    Keep an existing row/col assignment when it is usable, otherwise derive one.

    The assignment is re-derived when a key is missing its row/col, when the
    keys are not strictly ordered by (row, col), or when there are more than
    twice as many rows as the layout is tall in units.

    Returns:
        True if physical_to_logical was run
    """
    if len(keys) == 0:
        return False

    if not is_logically_ordered(keys):
        logger.info("Keys are missing row/col or are not ordered, deriving logical layout")
        physical_to_logical(keys, thresholds)
        return True

    physical_height = max(k.y + k.h for k in keys) - min(k.y for k in keys)
    total_rows = max(k.row for k in keys) + 1
    if total_rows > physical_height * 2:
        logger.warning(f"{total_rows} rows for a layout {physical_height:.2f}U tall, deriving logical layout")
        physical_to_logical(keys, thresholds)
        return True
    return False
