"""
Selección del objetivo de mirada.

Con varias personas visibles el objetivo rota ("rebota") entre ellas,
ordenadas de la más cercana a la más lejana, cada BOUNCE_INTERVAL_MS.
"""

import logging
from dataclasses import dataclass
from typing import Optional, List

from gazer.tracking.entities import TrackedEntity, Target

logger = logging.getLogger(__name__)

BOUNCE_INTERVAL_MS = 1000.0


@dataclass
class BounceState:
    bounce_index: int = 0
    last_bounce_time: Optional[float] = None


def select_target(
    entities: List[TrackedEntity],
    now: float,
    state: BounceState,
    bounce_interval_ms: float = BOUNCE_INTERVAL_MS
) -> Target:
    if not entities:
        state.bounce_index = 0
        state.last_bounce_time = None
        return Target.center()

    if len(entities) == 1:
        return Target.from_entity(entities[0])

    # sorted() is stable: equal distances keep input order
    ranked = sorted(entities, key=lambda e: e.distance_metric, reverse=True)

    # the list may have shrunk since the index was last advanced
    state.bounce_index %= len(ranked)

    if state.last_bounce_time is None:
        state.last_bounce_time = now
    elif now - state.last_bounce_time > bounce_interval_ms:
        state.bounce_index = (state.bounce_index + 1) % len(ranked)
        state.last_bounce_time = now

    return Target.from_entity(ranked[state.bounce_index])


class TargetSelector:
    def __init__(self, bounce_interval_ms: float = BOUNCE_INTERVAL_MS):
        if bounce_interval_ms <= 0:
            raise ValueError(f"bounce_interval_ms must be positive: {bounce_interval_ms}")

        self.bounce_interval_ms = bounce_interval_ms
        self.state = BounceState()
        self.current: Target = Target.center()

        self.stats = {
            'total_selections': 0,
            'target_switches': 0,
            'center_fallbacks': 0
        }

        logger.info(f"TargetSelector initialized: bounce_interval={bounce_interval_ms}ms")

    def select(self, entities: List[TrackedEntity], now: float) -> Target:
        self.stats['total_selections'] += 1

        target = select_target(entities, now, self.state, self.bounce_interval_ms)

        if target.is_center:
            self.stats['center_fallbacks'] += 1

        if target.id != self.current.id:
            self.stats['target_switches'] += 1
            logger.debug(f"Target switch: {self.current.id} -> {target.id} "
                        f"(candidates={len(entities)}, index={self.state.bounce_index})")

        self.current = target
        return target

    def reset(self):
        self.state = BounceState()
        self.current = Target.center()

    def get_stats(self) -> dict:
        return self.stats.copy()
