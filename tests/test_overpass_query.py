import pytest

from attraviso.providers.overpass_provider import (
    MAX_RADIUS_M,
    MIN_RADIUS_M,
    TOURISM_VALUES,
    build_overpass_query,
    clamp_radius,
)


@pytest.mark.parametrize("radius", [-5000, 0, 1, 50, 99.9, 100])
def test_radius_below_minimum_uses_minimum(radius):
    assert build_overpass_query(10, 20, radius).radius == MIN_RADIUS_M


@pytest.mark.parametrize("radius", [200000, 200001, 5e6, float("inf")])
def test_radius_above_maximum_uses_maximum(radius):
    assert build_overpass_query(10, 20, radius).radius == MAX_RADIUS_M


@pytest.mark.parametrize("radius", [None, "", "abc", float("nan")])
def test_missing_or_garbage_radius_uses_default(radius):
    assert clamp_radius(radius) == 2000


def test_numeric_string_radius_is_accepted():
    assert clamp_radius("7500") == 7500


def test_clamping_is_monotonic():
    radii = [-1, 0, 100, 150, 999, 5000, 20001, 199999, 250000]
    clamped = [clamp_radius(r) for r in radii]
    assert clamped == sorted(clamped)


def test_wider_radius_gets_longer_timeout_and_smaller_cap():
    queries = [build_overpass_query(0, 0, r) for r in (100, 5000, 5001, 20000, 20001, 50001, 200000)]
    timeouts = [q.timeout for q in queries]
    limits = [q.limit for q in queries]
    assert timeouts == sorted(timeouts)
    assert limits == sorted(limits, reverse=True)
    assert timeouts[0] < timeouts[-1]
    assert limits[0] > limits[-1]


def test_london_query():
    q = build_overpass_query(51.5, -0.12, 2000)
    assert q.radius == 2000
    assert q.timeout == 25
    assert q.text.startswith("[out:json][timeout:25];")
    assert "(around:2000,51.5,-0.12)" in q.text
    assert f"out center {q.limit};" in q.text


def test_query_selects_tourism_allowlist_and_historic_for_every_geometry():
    text = build_overpass_query(1, 2, 1000).text
    for kind in ("node", "way", "relation"):
        assert f'{kind}["historic"](around:1000,1.0,2.0);' in text
        assert f'{kind}["tourism"~"^(' in text
    for value in TOURISM_VALUES:
        assert value in text
    assert "hotel" not in text


def test_query_is_deterministic():
    assert build_overpass_query(48.85, 2.35, 3000) == build_overpass_query(48.85, 2.35, 3000)
