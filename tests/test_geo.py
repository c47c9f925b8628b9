from __future__ import annotations

import math

import pytest

from carcare.geo import distance, within_radius
from carcare.models.user import Coords


def test_distance_between_warsaw_example_points_is_within_three_km() -> None:
    a = Coords(lat=52.23, lon=21.01)
    b = Coords(lat=52.25, lon=21.03)

    km = distance(a, b)
    assert 2.0 < km < 3.0


def test_distance_is_symmetric_and_zero_for_same_point() -> None:
    a = Coords(lat=52.23, lon=21.01)
    b = Coords(lat=50.06, lon=19.94)

    assert distance(a, b) == pytest.approx(distance(b, a), abs=1e-12)
    assert distance(a, a) == 0.0


def test_one_degree_of_latitude_uses_6371_km_radius() -> None:
    km = distance(Coords(lat=0.0, lon=0.0), Coords(lat=1.0, lon=0.0))
    assert km == pytest.approx(6371 * math.pi / 180, rel=1e-9)


def test_antipodal_points_do_not_raise() -> None:
    km = distance(Coords(lat=0.0, lon=0.0), Coords(lat=0.0, lon=180.0))
    assert km == pytest.approx(6371 * math.pi, rel=1e-9)


def test_within_radius_includes_boundary() -> None:
    assert within_radius(3.0, 3.0)
    assert not within_radius(3.0001, 3.0)
