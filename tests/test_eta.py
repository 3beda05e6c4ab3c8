import pytest

from bustracker.eta import Traffic, estimate


def test_known_values():
    assert estimate(100, "low", 0) == 150
    assert estimate(10, "medium", 0) == 20
    assert estimate(10, "high", 1) == 32
    assert estimate(0, "low", 0) == 0


def test_half_minute_rounds_up():
    # 25 km at 40 km/h = 37.5 min, plus 2 stops * 2 min = 41.5
    assert estimate(25, "low", 2) == 42
    # 3 km = 4.5 min; Python's round() would give 4
    assert estimate(3, "low", 0) == 5


def test_accepts_enum_or_string():
    assert estimate(40, Traffic.MEDIUM, 0) == estimate(40, "medium", 0) == 80


@pytest.mark.parametrize("traffic", ["low", "medium", "high"])
def test_monotonic_in_distance_and_stops(traffic):
    by_distance = [estimate(d, traffic, 3) for d in range(0, 200, 7)]
    assert by_distance == sorted(by_distance)
    by_stops = [estimate(42.5, traffic, s) for s in range(0, 20)]
    assert by_stops == sorted(by_stops)


def test_worse_traffic_never_faster():
    for distance in (0, 1, 12.3, 55, 300):
        for stops in (0, 1, 9):
            low, medium, high = (estimate(distance, t, stops) for t in ("low", "medium", "high"))
            assert low <= medium <= high


def test_rejects_bad_inputs():
    with pytest.raises(ValueError):
        estimate(-1, "low", 0)
    with pytest.raises(ValueError):
        estimate(10, "low", -2)
    with pytest.raises(ValueError):
        estimate(10, "gridlock", 0)
