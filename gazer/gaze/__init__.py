"""
Módulo de Mirada: selección del objetivo y suavizado del movimiento del ojo.
"""

from .target_selector import TargetSelector, BounceState, select_target
from .smoother import GazeSmoother, GazeState, look_direction

__all__ = ['TargetSelector', 'BounceState', 'select_target',
           'GazeSmoother', 'GazeState', 'look_direction']
