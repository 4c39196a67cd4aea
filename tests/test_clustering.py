import math

import pytest

from rota.models.domain import GeoPoint
from rota.services.routing.clustering import cluster_by_locality, locality_key, sequence_clusters
from rota.services.routing.distance import DistanceOracle
from rota.services.routing.models import GENERAL_CLUSTER, RouteStop


class EuclideanSource:
    def distance_km(self, points):
        a, b = points
        return math.dist((a.latitude, a.longitude), (b.latitude, b.longitude))


def _stop(sid: str, lat, lon, locality=None) -> RouteStop:
    return RouteStop(stop_id=sid, latitude=lat, longitude=lon, locality=locality)


@pytest.mark.parametrize(
    "label, expected",
    [
        ("  Ponta Negra ", "PONTA NEGRA"),
        ("ponta negra", "PONTA NEGRA"),
        ("", GENERAL_CLUSTER),
        ("   ", GENERAL_CLUSTER),
        (None, GENERAL_CLUSTER),
    ],
)
def test_locality_key_normalizes(label, expected):
    assert locality_key(label) == expected


def test_cluster_by_locality_merges_spellings_and_keeps_order():
    stops = [
        _stop("1", 0, 1, "Tirol"),
        _stop("2", 0, 2, None),
        _stop("3", 0, 3, " tirol "),
        _stop("4", 0, 4, ""),
    ]

    clusters = cluster_by_locality(stops)

    assert list(clusters) == ["TIROL", GENERAL_CLUSTER]
    assert [stop.stop_id for stop in clusters["TIROL"]] == ["1", "3"]
    assert [stop.stop_id for stop in clusters[GENERAL_CLUSTER]] == ["2", "4"]


def test_nearest_cluster_is_visited_first():
    oracle = DistanceOracle(EuclideanSource(), network_budget=10_000)
    stops = [
        _stop("a1", 0, 10, "A"),
        _stop("a2", 0, 11, "A"),
        _stop("b1", 0, 1, "B"),
        _stop("b2", 0, 2, "B"),
    ]

    ordered, visit_order = sequence_clusters(oracle, GeoPoint(0, 0), cluster_by_locality(stops))

    assert visit_order == ["B", "A"]
    assert [stop.stop_id for stop in ordered] == ["b1", "b2", "a1", "a2"]


def test_cluster_without_locatable_representative_goes_last():
    oracle = DistanceOracle(None)
    lost = _stop("lost", None, None, "X")
    found = _stop("found", 0, 1, "Y")

    ordered, visit_order = sequence_clusters(oracle, GeoPoint(0, 0), {"X": [lost], "Y": [found]})

    assert ordered == [found, lost]
    assert visit_order == ["Y", "X"]
