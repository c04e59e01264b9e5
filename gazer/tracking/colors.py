import logging
import numpy as np
from typing import Dict, Optional, Sequence

from .entities import Color

logger = logging.getLogger(__name__)

DEFAULT_PALETTE: Sequence[Color] = (
    (230, 25, 75),
    (60, 180, 75),
    (255, 225, 25),
    (0, 130, 200),
    (245, 130, 48),
    (145, 30, 180),
    (70, 240, 240),
    (240, 50, 230),
)

POLICIES = ('palette', 'random')


class IdentityColorAssigner:
    """
    Debug color per identity, memoized for the lifetime of the identity.

    'palette' picks DEFAULT_PALETTE[sequence % len(palette)];
    'random' draws each RGB channel in [50, 255) at first sight.
    """

    def __init__(
        self,
        policy: str = 'palette',
        palette: Optional[Sequence[Color]] = None,
        seed: Optional[int] = None
    ):
        if policy not in POLICIES:
            raise ValueError(f"Unknown color policy '{policy}', expected one of {POLICIES}")

        self.policy = policy
        self.palette = tuple(palette) if palette else tuple(DEFAULT_PALETTE)
        self.rng = np.random.default_rng(seed)
        self._colors: Dict[str, Color] = {}
        self._next_sequence = 0

        logger.debug(f"IdentityColorAssigner initialized: policy={policy}, palette={len(self.palette)}")

    def color_for(self, entity_id: str, sequence: Optional[int] = None) -> Color:
        color = self._colors.get(entity_id)
        if color is not None:
            return color

        if self.policy == 'palette':
            if sequence is None:
                sequence = self._next_sequence
            self._next_sequence = max(self._next_sequence, sequence + 1)
            color = self.palette[sequence % len(self.palette)]
        else:
            r, g, b = self.rng.integers(50, 255, size=3)
            color = (int(r), int(g), int(b))

        self._colors[entity_id] = color
        return color

    def forget(self, entity_id: str):
        self._colors.pop(entity_id, None)

    def __len__(self) -> int:
        return len(self._colors)

    def __contains__(self, entity_id: str) -> bool:
        return entity_id in self._colors


def to_css(color: Optional[Color], alpha: float = 0.9) -> str:
    if color is None:
        return 'none'
    r, g, b = color
    return f"rgba({r},{g},{b},{alpha})"
