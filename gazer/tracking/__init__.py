"""
Módulo de Tracking para identidades persistentes de personas.
Asociación voraz por IoU sobre cajas predichas linealmente.
"""

from .entities import BoundingBox, Detection, TrackedEntity, Target, CENTER_TARGET_ID
from .colors import IdentityColorAssigner, to_css
from .tracker import PersonTracker, IdentitySequence, track, iou, predict_box, filter_detections

__all__ = ['BoundingBox', 'Detection', 'TrackedEntity', 'Target', 'CENTER_TARGET_ID',
           'IdentityColorAssigner', 'to_css', 'PersonTracker', 'IdentitySequence',
           'track', 'iou', 'predict_box', 'filter_detections']
