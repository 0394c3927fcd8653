# keygrid/clustering.py
"""
Column and row clustering of keys.

Two strategies, chosen once per layout:
  1. Standard grid: every key sits on integer x/y and is (nearly) unrotated.
     Keys are grouped directly by their column/row position; keys larger
     than the large-key threshold are grouped by their visual center.
  2. Neighbor based: rotated or staggered layouts. Trusted up/down links
     join columns and trusted left/right links join rows.

Both produce partitions of key indices via UnionFind.
"""
import math
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from keygrid.utils.config import KeyInfo, ThresholdsConfig
from keygrid.neighbors import find_neighbors, trusted_edges

logger = logging.getLogger(__name__)

Clusters = List[List[int]]


class UnionFind:
    """Disjoint sets over the integers 0..size-1 with path compression and union by rank."""

    def __init__(self, size: int):
        self.parent = list(range(size))
        self.rank = [0] * size

    def find(self, item: int) -> int:
        root = item
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[item] != root:
            self.parent[item], item = root, self.parent[item]
        return root

    def union(self, a: int, b: int) -> bool:
        """Merge the sets containing a and b. Returns False if already joined."""
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return False
        if self.rank[root_a] < self.rank[root_b]:
            root_a, root_b = root_b, root_a
        self.parent[root_b] = root_a
        if self.rank[root_a] == self.rank[root_b]:
            self.rank[root_a] += 1
        return True

    def connected(self, a: int, b: int) -> bool:
        return self.find(a) == self.find(b)

    def groups(self) -> Clusters:
        """Members of each set, sets ordered by their smallest member."""
        by_root: Dict[int, List[int]] = {}
        for item in range(len(self.parent)):
            by_root.setdefault(self.find(item), []).append(item)
        return list(by_root.values())

    def __len__(self) -> int:
        return len(self.parent)


def is_axis_aligned(value: float, thresholds: ThresholdsConfig) -> bool:
    return abs(value) > thresholds.axis_aligned_threshold


def is_standard_grid(keys: Sequence,
                     infos: Sequence[KeyInfo],
                     thresholds: Optional[ThresholdsConfig] = None) -> bool:
    """True when every key is on whole-number x/y and not meaningfully rotated."""
    thresholds = thresholds or ThresholdsConfig()
    for key, info in zip(keys, infos):
        if not (float(key.x).is_integer() and float(key.y).is_integer()):
            return False
        if not (is_axis_aligned(info.local_right[0], thresholds)
                and is_axis_aligned(info.local_down[1], thresholds)):
            return False
    return True


def _union_by_value(values: Sequence[float]) -> UnionFind:
    uf = UnionFind(len(values))
    first_seen: Dict[float, int] = {}
    for index, value in enumerate(values):
        if value in first_seen:
            uf.union(first_seen[value], index)
        else:
            first_seen[value] = index
    return uf


def grid_cluster_values(keys: Sequence,
                        infos: Sequence[KeyInfo],
                        thresholds: ThresholdsConfig) -> Tuple[List[float], List[float]]:
    """Column and row grouping value of each key on a standard grid."""
    col_values, row_values = [], []
    for key, info in zip(keys, infos):
        if key.w <= thresholds.large_key_threshold:
            col_values.append(float(key.x))
        else:
            col_values.append(float(math.floor(info.center[0])))
        if key.h <= thresholds.large_key_threshold:
            row_values.append(float(key.y))
        else:
            row_values.append(float(math.floor(info.center[1])))
    return col_values, row_values


def cluster_standard_grid(keys: Sequence,
                          infos: Sequence[KeyInfo],
                          thresholds: Optional[ThresholdsConfig] = None) -> Tuple[UnionFind, UnionFind]:
    """Group keys sharing a column/row position. Neighbor search is not needed."""
    thresholds = thresholds or ThresholdsConfig()
    col_values, row_values = grid_cluster_values(keys, infos, thresholds)
    return _union_by_value(col_values), _union_by_value(row_values)


def cluster_by_neighbors(infos: Sequence[KeyInfo],
                         thresholds: Optional[ThresholdsConfig] = None) -> Tuple[UnionFind, UnionFind]:
    """
    Group keys through trusted neighbor links.

    Two axis-aligned keys are only joined when their centers line up within
    the alignment threshold; a rotated key is joined to its confirmed
    neighbor unconditionally.

    Args:
        infos: Keys with neighbor slots filled by find_neighbors
        thresholds: Alignment thresholds

    Returns:
        (column union-find, row union-find)
    """
    thresholds = thresholds or ThresholdsConfig()
    cols = UnionFind(len(infos))
    rows = UnionFind(len(infos))

    for source, target, _ in trusted_edges(infos, ('down', 'up')):
        a, b = infos[source], infos[target]
        if is_axis_aligned(a.local_down[1], thresholds) and is_axis_aligned(b.local_down[1], thresholds):
            if abs(a.center[0] - b.center[0]) > thresholds.alignment_threshold:
                continue
        cols.union(source, target)

    for source, target, _ in trusted_edges(infos, ('right', 'left')):
        a, b = infos[source], infos[target]
        if is_axis_aligned(a.local_right[0], thresholds) and is_axis_aligned(b.local_right[0], thresholds):
            if abs(a.center[1] - b.center[1]) > thresholds.alignment_threshold:
                continue
        rows.union(source, target)

    return cols, rows


def build_clusters(keys: Sequence,
                   infos: Sequence[KeyInfo],
                   thresholds: Optional[ThresholdsConfig] = None) -> Tuple[Clusters, Clusters]:
    """
    Partition keys into column clusters and row clusters.

    Returns:
        (column clusters, row clusters), each a list of key-index lists
    """
    thresholds = thresholds or ThresholdsConfig()
    if is_standard_grid(keys, infos, thresholds):
        logger.debug(f"Clustering {len(keys)} keys as a standard grid")
        cols, rows = cluster_standard_grid(keys, infos, thresholds)
    else:
        logger.debug(f"Clustering {len(keys)} keys through neighbor links")
        find_neighbors(infos, thresholds)
        cols, rows = cluster_by_neighbors(infos, thresholds)

    col_clusters, row_clusters = cols.groups(), rows.groups()
    logger.debug(f"Found {len(col_clusters)} column clusters and {len(row_clusters)} row clusters")
    return col_clusters, row_clusters
