from __future__ import annotations

import numpy as np
import pytest

from cvgraph.pbc import Box, init_positions


def test_minimum_image_orthorhombic():
    box = Box.from_lengths([10.0, 5.0, 2.0])
    dr = np.array([[9.0, 4.0, 1.5], [-6.0, 0.5, -1.2]])
    out = box.minimum_image(dr)
    assert np.allclose(out, [[-1.0, -1.0, -0.5], [4.0, 0.5, 0.8]])


def test_distance_points_from_a_to_b():
    box = Box.from_lengths(10.0)
    d = box.distance(np.array([9.5, 0.0, 0.0]), np.array([0.5, 0.0, 0.0]))
    assert np.allclose(d, [1.0, 0.0, 0.0])


def test_open_axes_are_left_alone():
    box = Box.from_lengths([10.0, 0.0, 0.0])
    out = box.minimum_image(np.array([9.0, 9.0, -30.0]))
    assert np.allclose(out, [-1.0, 9.0, -30.0])
    assert box.is_periodic()
    assert box.min_length() == 10.0
    assert not Box.none().is_periodic()
    assert Box.from_lengths(None).min_length() == float("inf")


def test_wrap():
    box = Box.from_lengths(4.0)
    r = box.wrap(np.array([[4.5, -0.5, 8.0]]))
    assert np.allclose(r, [[0.5, 3.5, 0.0]])


def test_box_validation():
    with pytest.raises(ValueError):
        Box.from_lengths([1.0, 2.0])
    with pytest.raises(ValueError):
        Box.from_lengths([-1.0, 2.0, 3.0])


def test_init_positions_inside_box():
    box = Box.from_lengths(3.0)
    r = init_positions(50, box, seed=3)
    assert r.shape == (50, 3)
    assert np.all(r >= 0.0) and np.all(r < 3.0)
    assert np.array_equal(r, init_positions(50, box, seed=3))
