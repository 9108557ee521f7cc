"""Tests for the force-directed concept layout."""

from __future__ import annotations

import copy
import math
import random

import pytest

from latent_explorer.concepts import ConceptCandidate
from latent_explorer.layout import (
    ForceLayoutEngine,
    LayoutConfig,
    LayoutPoint,
    LayoutState,
    kinetic_energy,
)


def _concepts(count: int) -> list[ConceptCandidate]:
    return [
        ConceptCandidate(term=f"term-{i}", vector=(1.0, 0.0), query_similarity=0.5)
        for i in range(count)
    ]


def test_initialize_places_center_first_and_concepts_on_a_ring() -> None:
    engine = ForceLayoutEngine(rng=random.Random(1))

    points = engine.initialize(_concepts(12), query_label="memory")

    assert len(points) == 13
    center = points[0]
    assert center.fixed and (center.x, center.y) == (0.0, 0.0)
    assert center.label == "memory"
    assert [p.label for p in points[1:]] == [f"term-{i}" for i in range(12)]
    for point in points[1:]:
        assert not point.fixed
        assert 0.6 - 1e-9 <= point.radius <= 0.8 + 1e-9
        assert (point.vx, point.vy) == (0.0, 0.0)
    assert engine.state is LayoutState.INITIALIZED


def test_initialize_with_no_concepts() -> None:
    points = ForceLayoutEngine().initialize([])

    assert len(points) == 1 and points[0].fixed


def test_tick_never_moves_the_center() -> None:
    engine = ForceLayoutEngine(rng=random.Random(3))
    points = engine.initialize(_concepts(18))

    for _ in range(50):
        engine.tick()

    assert (points[0].x, points[0].y, points[0].vx, points[0].vy) == (0.0, 0.0, 0.0, 0.0)
    assert engine.state is LayoutState.RUNNING


@pytest.mark.parametrize("seed", range(0, 300, 10))
def test_energy_decays_over_time(seed: int) -> None:
    engine = ForceLayoutEngine(rng=random.Random(seed))
    points = engine.initialize(_concepts(18))

    engine.settle(10)
    early = kinetic_energy(points)
    engine.settle(990)
    late = kinetic_energy(points)

    assert late <= early
    assert max(point.radius for point in points) < 1.5


def test_coincident_start_spreads_out_and_settles() -> None:
    engine = ForceLayoutEngine()
    points = [LayoutPoint("center", 0.0, 0.0, fixed=True)]
    points += [LayoutPoint(f"term-{i}", 0.7, 0.0) for i in range(18)]

    engine.settle(10, points)
    early = kinetic_energy(points)
    engine.settle(990, points)
    late = kinetic_energy(points)

    assert late <= early
    assert max(point.radius for point in points) < 2.0
    positions = {(round(p.x, 6), round(p.y, 6)) for p in points[1:]}
    assert len(positions) == 18


def test_one_tick_moves_a_point_at_most_max_step() -> None:
    config = LayoutConfig()
    engine = ForceLayoutEngine(config)
    points = [LayoutPoint("a", 0.7, 0.0), LayoutPoint("b", 0.7001, 0.0)]

    engine.tick(points)

    assert abs(points[0].x - 0.7) <= config.max_step + 1e-12
    assert abs(points[1].x - 0.7001) <= config.max_step + 1e-12
    assert points[0].speed_squared <= config.max_step**2 + 1e-12


def test_repulsion_fades_to_zero_at_min_distance() -> None:
    engine = ForceLayoutEngine(LayoutConfig(centering_strength=0.0))

    touching = [LayoutPoint("a", 0.0, 0.0), LayoutPoint("b", 0.2, 0.0)]
    close = [LayoutPoint("a", 0.0, 0.0), LayoutPoint("b", 0.19, 0.0)]

    assert engine.residual_force(touching) == 0.0
    assert 0.0 < engine.residual_force(close) < 0.02


def test_residual_force_reaches_zero_only_after_settling() -> None:
    engine = ForceLayoutEngine(rng=random.Random(0))
    points = engine.initialize(_concepts(3))

    engine.tick()
    assert kinetic_energy(points) < 1e-6
    assert engine.residual_force() > 1e-5

    engine.settle(400)
    assert engine.residual_force() < 1e-5
    for point in points[1:]:
        assert point.radius == pytest.approx(0.7, abs=1e-3)


def test_overlapping_points_are_pushed_apart() -> None:
    engine = ForceLayoutEngine()
    points = [
        LayoutPoint("center", 0.0, 0.0, fixed=True),
        LayoutPoint("a", 0.7, 0.0),
        LayoutPoint("b", 0.75, 0.0),
    ]

    engine.tick(points)

    assert points[1].x < 0.7
    assert points[2].x > 0.75


def test_coincident_points_separate_symmetrically() -> None:
    engine = ForceLayoutEngine()
    points = [LayoutPoint("a", 0.7, 0.0), LayoutPoint("b", 0.7, 0.0)]

    engine.tick(points)

    assert (points[0].x, points[0].y) != (points[1].x, points[1].y)
    assert points[0].vx == pytest.approx(-points[1].vx)
    assert points[0].vy == pytest.approx(-points[1].vy)


def test_centering_pulls_toward_target_radius() -> None:
    engine = ForceLayoutEngine()
    far = [LayoutPoint("far", 1.5, 0.0)]
    near = [LayoutPoint("near", 0.1, 0.0)]

    engine.tick(far)
    engine.tick(near)

    assert far[0].x < 1.5
    assert near[0].x > 0.1


def test_tick_is_deterministic_and_order_independent() -> None:
    engine = ForceLayoutEngine(rng=random.Random(11))
    points = engine.initialize(_concepts(9))
    forward = copy.deepcopy(points)
    backward = list(reversed(copy.deepcopy(points)))

    for _ in range(25):
        engine.tick(forward)
        engine.tick(backward)

    by_label = {p.label: p for p in backward}
    for point in forward:
        twin = by_label[point.label]
        assert point.x == pytest.approx(twin.x, abs=1e-12)
        assert point.y == pytest.approx(twin.y, abs=1e-12)


def test_same_seed_gives_same_layout() -> None:
    first = ForceLayoutEngine(rng=random.Random(5)).initialize(_concepts(6))
    second = ForceLayoutEngine(rng=random.Random(5)).initialize(_concepts(6))

    assert [(p.x, p.y) for p in first] == [(p.x, p.y) for p in second]


def test_settle_returns_remaining_energy() -> None:
    engine = ForceLayoutEngine(rng=random.Random(2))
    engine.initialize(_concepts(18))

    energy = engine.settle(600)

    assert energy == pytest.approx(kinetic_energy(engine.points))
    assert math.isfinite(energy)


def test_discard_stops_the_simulation() -> None:
    engine = ForceLayoutEngine()
    engine.initialize(_concepts(3))

    engine.discard()

    assert engine.state is LayoutState.DISCARDED
    assert engine.points == []
    with pytest.raises(RuntimeError):
        engine.tick()


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        LayoutConfig(damping=1.0)
    with pytest.raises(ValueError):
        LayoutConfig(epsilon=0.0)
    with pytest.raises(ValueError):
        LayoutConfig(max_step=0.0)
