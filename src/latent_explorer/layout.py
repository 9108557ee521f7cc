"""
Force-directed 2D layout of concepts around the query center.

Coordinates live in a normalized unit-disc system with the query at the
origin. ``tick`` is a pure state transition over the points; the caller owns
the cadence (typically one tick per rendered frame) and decides when to stop.
"""

from __future__ import annotations

import enum
import logging
import math
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .concepts import ConceptCandidate

logger = logging.getLogger(__name__)

_GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))


class LayoutState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RUNNING = "running"
    DISCARDED = "discarded"


@dataclass(frozen=True)
class LayoutConfig:
    """Physical constants of the simulation.

    Repulsion is measured relative to its value at ``min_distance`` so it fades
    to zero at the threshold instead of switching off abruptly, and no point
    moves further than ``max_step`` in one tick. Together with damping below 1
    this keeps the layout bounded and lets the kinetic energy drain away.
    """

    base_radius: float = 0.7
    target_radius: float = 0.7
    angle_jitter: float = 0.3
    radius_jitter: float = 0.2
    repulsion_strength: float = 0.05
    centering_strength: float = 0.01
    damping: float = 0.85
    min_distance: float = 0.2
    epsilon: float = 0.01
    max_step: float = 0.05

    def __post_init__(self) -> None:
        if not 0.0 <= self.damping < 1.0:
            raise ValueError("damping must be in [0, 1)")
        if self.epsilon <= 0:
            raise ValueError("epsilon must be > 0")
        if self.max_step <= 0:
            raise ValueError("max_step must be > 0")


@dataclass
class LayoutPoint:
    """Mutable simulation state for one concept, or the fixed query center."""

    label: str
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    fixed: bool = False

    @property
    def radius(self) -> float:
        return math.hypot(self.x, self.y)

    @property
    def speed_squared(self) -> float:
        return self.vx * self.vx + self.vy * self.vy


def kinetic_energy(points: Sequence[LayoutPoint]) -> float:
    """Sum of squared speeds of the movable points."""
    return sum(point.speed_squared for point in points if not point.fixed)


class ForceLayoutEngine:
    """Radial initialization plus a damped repulsion/centering simulation."""

    def __init__(self, config: LayoutConfig | None = None, *, rng: random.Random | None = None) -> None:
        self.config = config or LayoutConfig()
        self._rng = rng or random.Random()
        self.state = LayoutState.UNINITIALIZED
        self.points: list[LayoutPoint] = []

    def initialize(self, concepts: Sequence[ConceptCandidate], *, query_label: str = "query") -> list[LayoutPoint]:
        """Place concepts on a jittered circle; the first point is the fixed center."""
        cfg = self.config
        count = len(concepts)
        points = [LayoutPoint(label=query_label, x=0.0, y=0.0, fixed=True)]
        for i, concept in enumerate(concepts):
            angle = 2 * math.pi * i / count + (self._rng.random() - 0.5) * cfg.angle_jitter
            radius = cfg.base_radius + (self._rng.random() - 0.5) * cfg.radius_jitter
            points.append(
                LayoutPoint(
                    label=concept.term,
                    x=math.cos(angle) * radius,
                    y=math.sin(angle) * radius,
                )
            )
        self.points = points
        self.state = LayoutState.INITIALIZED
        logger.debug("Initialized layout with %d concepts", count)
        return points

    def tick(self, points: Sequence[LayoutPoint] | None = None, dt: float = 1.0) -> None:
        """Advance the simulation one step, mutating *points* in place.

        Forces are computed from the positions at the start of the step, so
        the result does not depend on point order and contains no randomness.
        """
        if points is None:
            points = self._own_points()
        cfg = self.config
        movable = [point for point in points if not point.fixed]
        forces = self._forces(movable)

        for point, (fx, fy) in zip(movable, forces):
            vx = (point.vx + fx * dt) * cfg.damping
            vy = (point.vy + fy * dt) * cfg.damping
            step = math.hypot(vx, vy) * dt
            if step > cfg.max_step:
                scale = cfg.max_step / step
                vx *= scale
                vy *= scale
            point.vx, point.vy = vx, vy
            point.x += vx * dt
            point.y += vy * dt

        if points is self.points and self.state is LayoutState.INITIALIZED:
            self.state = LayoutState.RUNNING

    def residual_force(self, points: Sequence[LayoutPoint] | None = None) -> float:
        """Largest net force on any movable point; zero at equilibrium."""
        if points is None:
            points = self._own_points()
        movable = [point for point in points if not point.fixed]
        return max((math.hypot(fx, fy) for fx, fy in self._forces(movable)), default=0.0)

    def _own_points(self) -> list[LayoutPoint]:
        if self.state is LayoutState.DISCARDED:
            raise RuntimeError("layout was discarded; initialize a new one")
        return self.points

    def _forces(self, movable: Sequence[LayoutPoint]) -> list[tuple[float, float]]:
        cfg = self.config
        n = len(movable)
        # Repulsion is zero at min_distance and grows as points close in.
        threshold = cfg.repulsion_strength / (cfg.min_distance + cfg.epsilon)
        forces: list[tuple[float, float]] = []

        for i, a in enumerate(movable):
            fx = fy = 0.0
            for j, b in enumerate(movable):
                if i == j:
                    continue
                dx = a.x - b.x
                dy = a.y - b.y
                dist = math.hypot(dx, dy)
                if dist >= cfg.min_distance:
                    continue
                if dist == 0.0:
                    dx, dy = self._separation_direction(i, j, n)
                else:
                    dx, dy = dx / dist, dy / dist
                force = cfg.repulsion_strength / (dist + cfg.epsilon) - threshold
                fx += dx * force
                fy += dy * force

            radius = math.hypot(a.x, a.y)
            if radius > 0:
                pull = (radius - cfg.target_radius) * cfg.centering_strength
                fx -= (a.x / radius) * pull
                fy -= (a.y / radius) * pull
            forces.append((fx, fy))
        return forces

    def settle(self, ticks: int, points: Sequence[LayoutPoint] | None = None, dt: float = 1.0) -> float:
        """Run *ticks* steps and return the remaining kinetic energy."""
        target = self.points if points is None else points
        for _ in range(max(ticks, 0)):
            self.tick(target, dt)
        return kinetic_energy(target)

    def discard(self) -> None:
        self.points = []
        self.state = LayoutState.DISCARDED

    @staticmethod
    def _separation_direction(i: int, j: int, n: int) -> tuple[float, float]:
        # Antisymmetric: i and j are pushed in opposite directions.
        low, high = min(i, j), max(i, j)
        angle = _GOLDEN_ANGLE * (low * n + high)
        sign = 1.0 if i == low else -1.0
        return sign * math.cos(angle), sign * math.sin(angle)
