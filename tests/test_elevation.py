import math

import pytest

from scenic_roads.elevation import (
    BATCH_SIZE,
    OpenElevationLookup,
    backfill_points,
    enrich_elevation,
    fetch_elevations,
    smooth_points,
)


class RecordingLookup:
    """Returns a fixed elevation and remembers every batch it was sent."""

    def __init__(self, value=100.0, fail_on=()):
        self.value = value
        self.fail_on = set(fail_on)
        self.calls = []

    def lookup(self, batch):
        self.calls.append(list(batch))
        if len(self.calls) in self.fail_on:
            raise RuntimeError("elevation service unavailable")
        return [self.value] * len(batch)


class LatitudeLookup:
    def lookup(self, batch):
        return [lat * 10 for lat, _lon in batch]


# ────────────────────────────── backfill ──────────────────────────────
def test_chain_with_full_elevation_is_returned_without_lookup():
    lookup = RecordingLookup()
    points = [[0, 0, 10], [1, 1, 20], [2, 2, 30]]
    assert backfill_points(points, lookup) is points
    assert lookup.calls == []


def test_only_missing_points_are_looked_up_in_lat_lon_order():
    lookup = RecordingLookup(value=55.5)
    points = [[10.0, 45.0, 200.0], [11.0, 46.0], [12.0, 47.0, None]]
    filled = backfill_points(points, lookup)

    assert lookup.calls == [[(46.0, 11.0), (47.0, 12.0)]]
    assert filled == [[10.0, 45.0, 200.0], [11.0, 46.0, 55.5], [12.0, 47.0, 55.5]]


def test_missing_points_are_sent_in_batches():
    lookup = RecordingLookup()
    points = [[float(i % 90), float(i % 45)] for i in range(2 * BATCH_SIZE + 500)]
    backfill_points(points, lookup)
    assert [len(c) for c in lookup.calls] == [BATCH_SIZE, BATCH_SIZE, 500]


def test_failed_batch_defaults_to_zero_and_later_batches_still_run():
    lookup = RecordingLookup(value=7.0, fail_on={1})
    points = [[1.0, 2.0] for _ in range(BATCH_SIZE + 300)]
    filled = backfill_points(points, lookup)

    assert len(lookup.calls) == 2
    assert all(p[2] == 0 for p in filled[:BATCH_SIZE])
    assert all(p[2] == 7.0 for p in filled[BATCH_SIZE:])


def test_non_finite_coordinates_are_skipped_and_results_realigned():
    points = [[1.0, 1.0], [math.nan, 2.0], [3.0, math.inf], [4.0, 4.0]]
    lookup = RecordingLookup()
    values = fetch_elevations(points, LatitudeLookup())
    assert values == [10.0, 0, 0, 40.0]

    fetch_elevations(points, lookup)
    assert lookup.calls == [[(1.0, 1.0), (4.0, 4.0)]]


def test_batch_of_only_invalid_points_makes_no_call():
    lookup = RecordingLookup()
    assert fetch_elevations([[math.nan, math.nan]], lookup) == [0]
    assert lookup.calls == []


def test_missing_values_in_response_default_to_zero():
    class Sparse:
        def lookup(self, batch):
            return [None, 12.0]

    assert fetch_elevations([[0, 0], [1, 1], [2, 2]], Sparse()) == [0, 12.0, 0]


def test_lookup_returning_nothing_defaults_to_zero():
    class Empty:
        def lookup(self, batch):
            return None

    geometry = {"type": "LineString", "coordinates": [[0, 1], [0, 2], [0, 3]]}
    out = enrich_elevation(geometry, Empty())
    assert [p[2] for p in out["coordinates"]] == [0.0, 0.0, 0.0]


# ────────────────────────────── smoothing ─────────────────────────────
def test_window_is_clipped_at_chain_edges():
    z = [float(i) for i in range(25)]
    z[12] = 1000.0
    points = [[i * 0.001, 0.0, v] for i, v in enumerate(z)]

    smoothed = smooth_points(points)

    # centre: indices 2..22, 21 samples
    assert smoothed[12][2] == 59.0          # 1240 / 21
    # left edge: indices 0..10, 11 samples, outlier out of reach
    assert smoothed[0][2] == 5.0            # 55 / 11
    # right edge: indices 14..24
    assert smoothed[24][2] == 19.0          # 209 / 11


def test_smoothing_reads_original_values_not_partial_output():
    points = [[0, 0, 0.0], [1, 0, 0.0], [2, 0, 30.0]]
    smoothed = smooth_points(points, window=1)
    assert [p[2] for p in smoothed] == [0.0, 10.0, 15.0]


def test_smoothing_keeps_xy_and_length():
    points = [[i, -i, i * 3.0] for i in range(40)]
    smoothed = smooth_points(points)
    assert len(smoothed) == 40
    assert [(p[0], p[1]) for p in smoothed] == [(p[0], p[1]) for p in points]


def test_smoothing_rounds_to_one_decimal():
    points = [[0, 0, 1.0], [1, 0, 1.0], [2, 0, 2.0]]
    assert [p[2] for p in smooth_points(points)] == [1.3, 1.3, 1.3]


@pytest.mark.parametrize("last, expected", [(1.0, 0.3), (-1.0, -0.3), (3.0, 0.8)])
def test_smoothing_rounds_ties_away_from_zero(last, expected):
    # four samples in every window: mean is last / 4
    points = [[0, 0, 0.0], [1, 0, 0.0], [2, 0, 0.0], [3, 0, last]]
    assert [p[2] for p in smooth_points(points)] == [expected] * 4


def test_twelve_sample_edge_window_rounds_half_up():
    points = [[i, 0, 0.0] for i in range(30)]
    points[0][2] = 3.0
    # index 1 sees indices 0..11
    assert smooth_points(points)[1][2] == 0.3


@pytest.mark.parametrize("points", [[], [[0, 0, 5.55]], [[0, 0, 1.23], [1, 1, 9.87]]])
def test_chains_shorter_than_three_are_unchanged(points):
    assert smooth_points(points) == points


# ────────────────────────────── entry point ───────────────────────────
def test_enrich_multilinestring_keeps_chain_positions():
    geometry = {
        "type": "MultiLineString",
        "coordinates": [
            [[0, 1], [0, 2]],
            [[5, 3, 40.0], [6, 3, 40.0], [7, 3, 40.0]],
        ],
    }
    out = enrich_elevation(geometry, LatitudeLookup())

    assert out["type"] == "MultiLineString"
    assert out["coordinates"][0] == [[0, 1, 10], [0, 2, 20]]
    assert out["coordinates"][1] == [[5, 3, 40.0], [6, 3, 40.0], [7, 3, 40.0]]
    assert geometry["coordinates"][0] == [[0, 1], [0, 2]]


def test_enrich_linestring_returns_linestring():
    geometry = {"type": "LineString", "coordinates": [[0, 1], [0, 2], [0, 3]]}
    out = enrich_elevation(geometry, LatitudeLookup())
    assert out["type"] == "LineString"
    assert [p[2] for p in out["coordinates"]] == [20.0, 20.0, 20.0]


def test_enrich_survives_a_lookup_that_always_fails():
    geometry = {"type": "LineString", "coordinates": [[0, 1], [0, 2], [0, 3]]}
    out = enrich_elevation(geometry, RecordingLookup(fail_on={1}))
    assert out["coordinates"] == [[0, 1, 0.0], [0, 2, 0.0], [0, 3, 0.0]]


def test_unknown_geometry_type_is_untouched():
    geometry = {"type": "Point", "coordinates": [1, 2]}
    assert enrich_elevation(geometry, RecordingLookup()) is geometry


# ────────────────────────────── open-elevation ────────────────────────
class FakeClient:
    def __init__(self, response):
        self.response = response
        self.posts = []

    def post(self, endpoint, json_body=None):
        self.posts.append((endpoint, json_body))
        return self.response


def test_open_elevation_payload_and_alignment():
    client = FakeClient({"results": [{"latitude": 45.0, "longitude": 7.0, "elevation": 812.0}, {}]})
    values = OpenElevationLookup(client).lookup([(45.0, 7.0), (46.0, 8.0), (47.0, 9.0)])

    assert values == [812.0, None, None]
    endpoint, body = client.posts[0]
    assert endpoint == "/api/v1/lookup"
    assert body == {"locations": [
        {"latitude": 45.0, "longitude": 7.0},
        {"latitude": 46.0, "longitude": 8.0},
        {"latitude": 47.0, "longitude": 9.0},
    ]}
