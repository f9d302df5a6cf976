from __future__ import annotations

"""
Particle lifecycle engine.

Particles are spawned from mask samples, live for a short time while drifting
away from the glyph, and are retired once their lifetime is over (or once
they leave the surface, depending on the ``expire_out_of_bounds`` policy).

Spawning picks a random group first, then a random sample inside it. Groups
with few samples are therefore over-represented compared to an area-uniform
draw; this is the intended look.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import math
import random

from PyQt6.QtCore import QPointF, Qt
from PyQt6.QtGui import QColor, QPainter, QPen, QPolygonF

from .config import apply_default_config, config_bool, config_int, make_rng
from .mask_builder import Mask
from .slides import HslColor

SIZE_CLASSES = 4
JITTER_DIVISOR = 300.0
BASE_SPEED = 0.003
FAST_CHANCE = 0.05
FAST_DIVISOR = 10.0
SLOW_DIVISOR = 400.0

ALPHA_BUCKETS = 24


class ParticleState(str, Enum):
    INITIALIZING = "initializing"
    ANIMATING = "animating"
    EXPIRED = "expired"


@dataclass
class Particle:
    """
    Single short-lived particle.

    Positions and velocities are normalized to the surface size.
    """

    x: float
    y: float
    color: HslColor
    size: int = 1
    life: float = 0.0  # lifetime progress in [0, 1]
    speed: float = 0.0  # lifetime progress per frame
    vx: float = 0.0
    vy: float = 0.0
    state: ParticleState = ParticleState.INITIALIZING


def particle_opacity(life: float, opacity: float) -> float:
    """Rendered opacity: rises from 0, peaks mid-life, falls back to 0."""
    return max(0.0, opacity * math.sin(life * math.pi))


class ParticleSystem:
    """Owns every active particle for its whole lifetime."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config: Dict[str, Any] = apply_default_config(config if config is not None else {})
        self.rng = rng if rng is not None else make_rng(self.config)

        self.spawn_rate: int = config_int(self.config, "spawn_rate")
        self.expire_out_of_bounds: bool = config_bool(self.config, "expire_out_of_bounds")

        self._particles: List[Particle] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def particles(self) -> List[Particle]:
        return list(self._particles)

    def __len__(self) -> int:
        return len(self._particles)

    def clear(self) -> None:
        self._particles.clear()

    # ------------------------------------------------------------------
    # Spawning
    # ------------------------------------------------------------------
    def spawn_batch(self, mask: Optional[Mask], count: Optional[int] = None) -> List[Particle]:
        """
        Spawn up to ``count`` particles (defaults to the spawn rate) from ``mask``.

        Draws landing on an empty group produce nothing.
        """
        if mask is None or not mask.groups:
            return []
        if count is None:
            count = self.spawn_rate

        rng = self.rng
        groups = mask.groups
        spawned: List[Particle] = []
        for _ in range(max(0, int(count))):
            group = groups[int(rng.random() * len(groups))]
            if not group.samples:
                continue
            sample = group.samples[int(rng.random() * len(group.samples))]
            particle = Particle(x=sample.x, y=sample.y, color=group.color)
            self._dispatch(particle)
            spawned.append(particle)

        self._particles.extend(spawned)
        return spawned

    def _prepare(self, particle: Particle) -> None:
        """One-shot randomization of a freshly spawned particle."""
        rng = self.rng
        r1 = rng.random()
        r2 = rng.random()
        r3 = rng.random()

        particle.x += (r1 - 0.5) / JITTER_DIVISOR
        particle.y += (r2 - 0.5) / JITTER_DIVISOR
        particle.size = 1 + int(rng.random() * SIZE_CLASSES)

        particle.speed = (BASE_SPEED + (r1 + r2) / 2.0 / 10.0) / 4.0
        particle.life = 0.0

        divisor = FAST_DIVISOR if r1 < FAST_CHANCE else SLOW_DIVISOR
        angle = r3 * math.pi * 2.0
        particle.vx = math.cos(angle) * particle.speed / divisor
        particle.vy = math.sin(angle) * particle.speed / divisor

        particle.state = ParticleState.ANIMATING

    def _animate(self, particle: Particle) -> None:
        particle.life = min(1.0, particle.life + particle.speed)
        particle.x += particle.vx
        particle.y += particle.vy

        if particle.life >= 1.0:
            particle.state = ParticleState.EXPIRED
        elif self.expire_out_of_bounds and not (
            0.0 <= particle.x <= 1.0 and 0.0 <= particle.y <= 1.0
        ):
            particle.state = ParticleState.EXPIRED

    def _dispatch(self, particle: Particle) -> None:
        if particle.state is ParticleState.INITIALIZING:
            self._prepare(particle)
        elif particle.state is ParticleState.ANIMATING:
            self._animate(particle)

    # ------------------------------------------------------------------
    # Per-frame update / render
    # ------------------------------------------------------------------
    def update(self) -> int:
        """
        Advance every particle by one frame and drop the expired ones.

        Returns the number of particles retired in this pass.
        """
        alive: List[Particle] = []
        for particle in self._particles:
            self._dispatch(particle)
            if particle.state is not ParticleState.EXPIRED:
                alive.append(particle)
        retired = len(self._particles) - len(alive)
        self._particles = alive
        return retired

    def render(self, painter: QPainter, width: int, height: int, opacity: float) -> None:
        """
        Draw every active particle as a small square.

        Draw calls are batched by color, size class and quantized alpha.
        """
        if not self._particles or opacity <= 0.0:
            return

        groups: Dict[Tuple[HslColor, int, int], List[QPointF]] = {}
        for p in self._particles:
            alpha = particle_opacity(p.life, opacity)
            bucket = int(round(alpha * (ALPHA_BUCKETS - 1)))
            if bucket <= 0:
                continue
            # Points are centered; shift by half a size to draw from the top-left corner.
            half = p.size * 0.5
            pt = QPointF(p.x * width + half, p.y * height + half)
            groups.setdefault((p.color, p.size, bucket), []).append(pt)

        pen = QPen()
        pen.setCapStyle(Qt.PenCapStyle.SquareCap)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        for (color, size, bucket), pts in groups.items():
            qcolor: QColor = color.to_qcolor(bucket / float(ALPHA_BUCKETS - 1))
            pen.setColor(qcolor)
            pen.setWidthF(float(size))
            painter.setPen(pen)
            painter.drawPoints(QPolygonF(pts))
