"""
Shared pytest fixtures for keygrid tests.
"""
import logging

import pytest

from keygrid.data import Key


def make_key(x, y, w=1, h=1, r=0, rx=None, ry=None):
    return Key(x=x, y=y, w=w, h=h, r=r, rx=rx, ry=ry)


@pytest.fixture
def grid_keys():
    """Factory for a rows x cols grid of 1U keys in row-major order."""
    def _make(rows, cols, x_offset=0):
        return [make_key(col + x_offset, row) for row in range(rows) for col in range(cols)]
    return _make


@pytest.fixture
def visorbearer_keys():
    """Two rows of a heavily rotated, splayed split layout."""
    params = [
        (0.30, 0.62, 9, 0.80, 1.12), (1.82, 0.00, 19, 2.32, 0.50),
        (3.19, 0.15, 27, 3.69, 0.65), (4.20, 0.96, 33, 4.70, 1.46),
        (4.78, 1.96, 33, 5.28, 2.46), (6.46, 1.96, -33, 6.96, 2.46),
        (7.04, 0.96, -33, 7.54, 1.46), (8.05, 0.15, -27, 8.55, 0.65),
        (9.42, 0.00, -19, 9.92, 0.50), (10.94, 0.62, -9, 11.44, 1.12),
        (0.15, 1.61, 9, 0.65, 2.11), (1.52, 0.94, 19, 2.02, 1.44),
        (2.76, 1.04, 27, 3.26, 1.54), (3.68, 1.80, 33, 4.18, 2.30),
        (4.26, 2.80, 33, 4.76, 3.30), (6.98, 2.80, -33, 7.48, 3.30),
        (7.56, 1.80, -33, 8.06, 2.30), (8.48, 1.04, -27, 8.98, 1.54),
        (9.72, 0.94, -19, 10.22, 1.44), (11.09, 1.61, -9, 11.59, 2.11),
    ]
    return [make_key(x, y, r=r, rx=rx, ry=ry) for x, y, r, rx, ry in params]


@pytest.fixture
def restore_logging():
    """Undo root logger changes made by LoggingManager.setup_logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
