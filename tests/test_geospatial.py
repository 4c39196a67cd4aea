import math

import pytest

from rota.services.geospatial import coordinates_in_brazil, haversine_km, is_valid_coordinate


def test_haversine_one_degree_at_equator():
    assert haversine_km(0, 0, 0, 1) == pytest.approx(111.195, abs=1e-3)


def test_haversine_zero_for_identical_points():
    assert haversine_km(-5.79, -35.21, -5.79, -35.21) == 0


def test_haversine_is_symmetric():
    assert haversine_km(-5.79, -35.21, -5.88, -35.18) == pytest.approx(haversine_km(-5.88, -35.18, -5.79, -35.21))


@pytest.mark.parametrize(
    "lat, lon, expected",
    [
        (0.0, 0.0, True),
        (-5.79, -35.21, True),
        (None, -35.21, False),
        (-5.79, None, False),
        (math.nan, 1.0, False),
        (1.0, math.inf, False),
        (91.0, 0.0, False),
        (0.0, -181.0, False),
        ("abc", 1.0, False),
    ],
)
def test_is_valid_coordinate(lat, lon, expected):
    assert is_valid_coordinate(lat, lon) is expected


def test_coordinates_in_brazil():
    assert coordinates_in_brazil(-5.79, -35.21)
    assert coordinates_in_brazil(-23.55, -46.63)
    assert not coordinates_in_brazil(38.72, -9.14)
    assert not coordinates_in_brazil(-5.79, 35.21)
