"""
Suavizado de la mirada.

Persecución asintótica del objetivo en espacio de porcentaje [0, 100]:
- Zona muerta: no reacciona a micro-movimientos del detector
- Ease-out cúbico normalizado al ritmo de fotogramas
- Fracción amortiguada fija cerca del destino para evitar oscilaciones
"""

import math
import logging
import numpy as np
from dataclasses import dataclass
from typing import Optional, Tuple

from gazer.tracking.entities import Target

logger = logging.getLogger(__name__)

JITTER_THRESHOLD = 0.3
SMOOTH_SPEED = 0.02
SMOOTH_DAMPING = 0.95
FRAME_BASELINE_MS = 16.6
NEAR_DISTANCE = 5.0


@dataclass
class GazeState:
    current_x: float = 50.0
    current_y: float = 50.0
    last_tick_time: Optional[float] = None

    @property
    def position(self) -> Tuple[float, float]:
        return (self.current_x, self.current_y)


class GazeSmoother:
    def __init__(
        self,
        jitter_threshold: float = JITTER_THRESHOLD,
        speed: float = SMOOTH_SPEED,
        damping: float = SMOOTH_DAMPING,
        frame_baseline_ms: float = FRAME_BASELINE_MS
    ):
        if speed <= 0 or speed > 1:
            raise ValueError(f"speed must be in (0, 1]: {speed}")
        if not 0 < damping <= 1:
            raise ValueError(f"damping must be in (0, 1]: {damping}")
        if frame_baseline_ms <= 0:
            raise ValueError(f"frame_baseline_ms must be positive: {frame_baseline_ms}")

        self.jitter_threshold = jitter_threshold
        self.speed = speed
        self.damping = damping
        self.frame_baseline_ms = frame_baseline_ms

        self.state = GazeState()

        self.stats = {
            'total_ticks': 0,
            'jitter_holds': 0,
            'damped_steps': 0,
            'eased_steps': 0
        }

        logger.info(f"GazeSmoother initialized: speed={speed}, damping={damping}, "
                   f"jitter={jitter_threshold}, baseline={frame_baseline_ms}ms")

    def step_fraction(self, distance: float, dt: float) -> float:
        if distance < NEAR_DISTANCE:
            return min(1.0, self.speed * self.damping)
        t = float(np.clip(self.speed * dt, 0.0, 1.0))
        return 1.0 - (1.0 - t) ** 3

    def tick(self, now: float, target: Optional[Target] = None) -> Tuple[float, float]:
        self.stats['total_ticks'] += 1
        state = self.state

        if state.last_tick_time is None:
            state.last_tick_time = now
            return state.position

        dt = max(0.0, now - state.last_tick_time) / self.frame_baseline_ms
        state.last_tick_time = now

        if target is None:
            target = Target.center()

        dx = target.x * 100.0 - state.current_x
        dy = target.y * 100.0 - state.current_y
        distance = math.hypot(dx, dy)

        if distance <= self.jitter_threshold:
            self.stats['jitter_holds'] += 1
            return state.position

        fraction = self.step_fraction(distance, dt)
        if distance < NEAR_DISTANCE:
            self.stats['damped_steps'] += 1
        else:
            self.stats['eased_steps'] += 1

        state.current_x += dx * fraction
        state.current_y += dy * fraction

        return state.position

    def get_position(self) -> Tuple[float, float]:
        return self.state.position

    def get_stats(self) -> dict:
        return self.stats.copy()


def look_direction(x: float, y: float) -> Tuple[float, float, float]:
    """Unit look vector for an eyeball facing +z, given a normalized target."""
    direction = np.array([(x - 0.5) * 2.0, (0.5 - y) * 2.0, 1.0])
    direction /= np.linalg.norm(direction)
    return (float(direction[0]), float(direction[1]), float(direction[2]))
