# keygrid/neighbors.py
"""
Directional nearest-neighbor search ("ray casting").

For every key and each of its four local directions, all other keys are
scored and the best candidate ahead is kept. Lower scores are better:

    score = perpendicular + forward * forward_distance_weight

Candidates are discarded when they sit on top of the source key, are not
far enough ahead, or are more than ~60 degrees off the search axis.
"""
from typing import Iterator, Optional, Sequence, Tuple
import logging

import numpy as np

from keygrid.utils.config import (
    DIRECTIONS, OPPOSITE, KeyInfo, Neighbor, ThresholdsConfig
)

logger = logging.getLogger(__name__)


def best_neighbor(source: KeyInfo,
                  direction: str,
                  centers: np.ndarray,
                  thresholds: ThresholdsConfig) -> Optional[Neighbor]:
    """
    Find the best candidate ahead of source in one direction.

    Args:
        source: Key to search from
        direction: One of 'right', 'left', 'down', 'up'
        centers: Array of shape (n, 2) with every key's center
        thresholds: Filtering and scoring thresholds

    Returns:
        Neighbor with the lowest score, or None if nothing passes the filters
    """
    vector = source.direction_vector(direction)
    deltas = centers - source.center
    distance = np.hypot(deltas[:, 0], deltas[:, 1])
    forward = deltas @ vector
    # |cross(vector, delta)|, vector is a unit vector
    perpendicular = np.abs(deltas[:, 0] * vector[1] - deltas[:, 1] * vector[0])

    valid = (distance >= thresholds.min_distance_threshold) & \
            (forward >= thresholds.min_forward_distance)
    valid[source.index] = False
    if not valid.any():
        return None

    ratio = np.full(len(centers), np.inf)
    ratio[valid] = perpendicular[valid] / forward[valid]
    valid &= ratio <= thresholds.max_alignment_ratio
    if not valid.any():
        return None

    score = np.where(valid,
                     perpendicular + forward * thresholds.forward_distance_weight,
                     np.inf)
    # argmin keeps the first of equal scores, i.e. input order
    best = int(np.argmin(score))
    return Neighbor(best, float(score[best]))


def find_neighbors(infos: Sequence[KeyInfo],
                   thresholds: Optional[ThresholdsConfig] = None) -> Sequence[KeyInfo]:
    """Fill the four neighbor slots of every key (all-pairs scan)."""
    thresholds = thresholds or ThresholdsConfig()
    if not infos:
        return infos

    centers = np.array([info.center for info in infos], dtype=float)
    for info in infos:
        for direction in DIRECTIONS:
            info.neighbors[direction] = best_neighbor(info, direction, centers, thresholds)

    found = sum(n is not None for info in infos for n in info.neighbors.values())
    logger.debug(f"Neighbor search: {found} directional links among {len(infos)} keys")
    return infos


def is_trusted_edge(infos: Sequence[KeyInfo], source: int, direction: str) -> bool:
    """
    Whether the link from source in direction can seed clustering.

    The link must be confirmed by the target in the opposite direction, and
    is rejected when the target also points back at source in the same
    direction (ambiguous orientation between strongly rotated keys).
    """
    link = infos[source].neighbors[direction]
    if link is None:
        return False
    target = infos[link.index]

    back = target.neighbors[OPPOSITE[direction]]
    if back is None or back.index != source:
        return False

    same = target.neighbors[direction]
    if same is not None and same.index == source:
        return False
    return True


def trusted_edges(infos: Sequence[KeyInfo],
                  directions: Tuple[str, ...]) -> Iterator[Tuple[int, int, str]]:
    """Yield (source, target, direction) for every trusted link in the given directions."""
    for info in infos:
        for direction in directions:
            if is_trusted_edge(infos, info.index, direction):
                yield info.index, info.neighbors[direction].index, direction

