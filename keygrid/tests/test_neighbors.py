import numpy as np
import pytest

from keygrid.data import Key
from keygrid.geometry import resolve_layout_geometry
from keygrid.neighbors import best_neighbor, find_neighbors, is_trusted_edge, trusted_edges
from keygrid.utils.config import KeyInfo, Neighbor, ThresholdsConfig


def neighbors_of(keys, thresholds=None):
    return find_neighbors(resolve_layout_geometry(keys), thresholds)


def test_row_of_keys():
    infos = neighbors_of([Key(x=0, y=0), Key(x=1, y=0), Key(x=2, y=0)])
    assert infos[0].neighbors['right'] == Neighbor(1, pytest.approx(0.3))
    assert infos[0].neighbors['left'] is None
    assert infos[1].neighbors['left'].index == 0
    assert infos[1].neighbors['right'].index == 2
    # row-mates are never ahead in the vertical directions
    for info in infos:
        assert info.neighbors['up'] is None
        assert info.neighbors['down'] is None


def test_empty_input():
    assert find_neighbors([]) == []


def test_duplicate_positions_are_not_neighbors():
    infos = neighbors_of([Key(x=0, y=0), Key(x=0, y=0), Key(x=1, y=0)])
    assert infos[0].neighbors['right'].index == 2
    assert infos[1].neighbors['right'].index == 2
    assert infos[2].neighbors['left'].index == 0


def test_candidates_too_far_off_axis_are_skipped():
    infos = neighbors_of([Key(x=0, y=0), Key(x=1, y=3)])
    assert infos[0].neighbors['right'] is None
    assert infos[0].neighbors['down'].index == 1
    assert infos[1].neighbors['up'].index == 0


def test_candidates_barely_ahead_are_skipped():
    infos = neighbors_of([Key(x=0, y=0), Key(x=0.05, y=2)])
    assert infos[0].neighbors['right'] is None
    assert infos[0].neighbors['down'].index == 1


def test_nearest_aligned_candidate_wins():
    infos = neighbors_of([Key(x=0, y=0), Key(x=2, y=0), Key(x=1, y=0.4)])
    # aligned key 2U away: 0.6, offset key 1U away: 0.4 + 0.3 = 0.7
    assert infos[0].neighbors['right'].index == 1
    assert infos[0].neighbors['right'].score == pytest.approx(0.6)


def test_rotated_key_searches_in_its_own_frame():
    infos = neighbors_of([Key(x=0, y=0, r=90, rx=0.5, ry=0.5), Key(x=0, y=1)])
    # rotated by 90 degrees, "right" points down the screen
    assert infos[0].neighbors['right'].index == 1
    assert infos[0].neighbors['down'] is None


def test_custom_thresholds():
    keys = [Key(x=0, y=0), Key(x=1, y=1.5)]
    assert neighbors_of(keys)[0].neighbors['right'] is not None
    strict = ThresholdsConfig(max_alignment_ratio=1.0)
    assert neighbors_of(keys, strict)[0].neighbors['right'] is None


def test_best_neighbor_ties_keep_input_order():
    infos = resolve_layout_geometry([Key(x=1, y=0), Key(x=1, y=0), Key(x=0, y=0)])
    centers = np.array([info.center for info in infos])
    link = best_neighbor(infos[2], 'right', centers, ThresholdsConfig())
    assert link.index == 0


class TestTrustedEdges:
    def test_bidirectional_link_is_trusted(self):
        infos = neighbors_of([Key(x=0, y=0), Key(x=1, y=0), Key(x=2, y=0)])
        assert is_trusted_edge(infos, 0, 'right')
        assert is_trusted_edge(infos, 1, 'left')
        edges = list(trusted_edges(infos, ('right', 'left')))
        assert (0, 1, 'right') in edges
        assert (1, 0, 'left') in edges
        assert len(edges) == 4

    def test_one_way_link_is_not_trusted(self):
        # 0 sees 1 to its right, but 1 sees 2 (closer, slightly offset) to its left
        infos = neighbors_of([Key(x=0, y=0), Key(x=2, y=0), Key(x=1.4, y=0.3)])
        assert infos[0].neighbors['right'].index == 1
        assert infos[1].neighbors['left'].index == 2
        assert not is_trusted_edge(infos, 0, 'right')

    def test_missing_link_is_not_trusted(self):
        infos = neighbors_of([Key(x=0, y=0)])
        assert not is_trusted_edge(infos, 0, 'right')

    def test_conflicting_orientation_is_not_trusted(self):
        a = KeyInfo(0, np.array([0.5, 0.5]), np.array([1.0, 0.0]), np.array([0.0, 1.0]))
        b = KeyInfo(1, np.array([1.5, 0.5]), np.array([1.0, 0.0]), np.array([0.0, 1.0]))
        a.neighbors['right'] = Neighbor(1, 0.3)
        b.neighbors['left'] = Neighbor(0, 0.3)
        assert is_trusted_edge([a, b], 0, 'right')

        b.neighbors['right'] = Neighbor(0, 0.3)
        assert not is_trusted_edge([a, b], 0, 'right')
