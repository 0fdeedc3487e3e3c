"""Shared pytest fixtures for splinekeeper tests."""

import numpy
import pytest

from splinekeeper import shape_keeper


@pytest.fixture
def zigzag() -> numpy.ndarray:
    """Five points bending up and down in the x-z plane."""
    return numpy.array(
        [[0, 0, 0], [1, 0, 1], [2, 0, 0], [3, 0, 1], [4, 0, 0]], dtype=float
    )


@pytest.fixture
def straight_line() -> numpy.ndarray:
    """Three collinear points along x, ten units long."""
    return numpy.array([[0, 0, 0], [5, 0, 0], [10, 0, 0]], dtype=float)


class FakeClock:
    """Manually advanced clock for update throttling."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_keeper(clock):
    """Factory for ShapeKeepers with throttling disabled and a fake clock."""

    def make(points, **kws):
        kws.setdefault("update_rate", 0)
        return shape_keeper.ShapeKeeper(points, clock=clock, **kws)

    return make
