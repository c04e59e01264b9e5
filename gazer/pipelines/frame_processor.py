import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from gazer.tracking import (
    Detection, TrackedEntity, Target, PersonTracker, IdentityColorAssigner, filter_detections
)
from gazer.tracking.tracker import IOU_THRESHOLD, EXPIRY_MS, SCORE_THRESHOLD
from gazer.gaze import TargetSelector, GazeSmoother
from gazer.gaze.target_selector import BOUNCE_INTERVAL_MS
from gazer.gaze.smoother import JITTER_THRESHOLD, SMOOTH_SPEED, SMOOTH_DAMPING, FRAME_BASELINE_MS
from gazer.utils import get_section

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameSnapshot:
    """Published once per detection frame and replaced whole, never mutated.

    ``entities`` holds this frame's detections only and is what the target is
    chosen from. ``alive`` adds the identities the tracker still retains
    through a short occlusion.
    """
    timestamp: float
    entities: Tuple[TrackedEntity, ...]
    target: Target
    alive: Tuple[TrackedEntity, ...] = ()

    @classmethod
    def empty(cls, timestamp: float = 0.0) -> 'FrameSnapshot':
        return cls(timestamp=timestamp, entities=(), target=Target.center())


def create_tracker(config: Dict[str, Any]) -> PersonTracker:
    tracking = get_section(config, 'tracking')
    colors = IdentityColorAssigner(
        policy=tracking.get('color_policy', 'palette'),
        seed=tracking.get('color_seed')
    )
    return PersonTracker(
        iou_threshold=tracking.get('iou_threshold', IOU_THRESHOLD),
        expiry_ms=tracking.get('expiry_ms', EXPIRY_MS),
        color_assigner=colors
    )


def create_selector(config: Dict[str, Any]) -> TargetSelector:
    selection = get_section(config, 'selection')
    return TargetSelector(bounce_interval_ms=selection.get('bounce_interval_ms', BOUNCE_INTERVAL_MS))


def create_smoother(config: Dict[str, Any]) -> GazeSmoother:
    smoothing = get_section(config, 'smoothing')
    return GazeSmoother(
        jitter_threshold=smoothing.get('jitter_threshold', JITTER_THRESHOLD),
        speed=smoothing.get('speed', SMOOTH_SPEED),
        damping=smoothing.get('damping', SMOOTH_DAMPING),
        frame_baseline_ms=smoothing.get('frame_baseline_ms', FRAME_BASELINE_MS)
    )


def create_detector(config: Dict[str, Any]):
    # imported here so the core runs without torch/rfdetr installed
    from gazer.inference import PersonDetector

    model = get_section(config, 'model')
    return PersonDetector(
        model_path=model.get('path'),
        confidence_threshold=model.get('confidence', 0.2),
        device=model.get('device'),
        imgsz=model.get('imgsz', 560),
        person_class_id=model.get('person_class_id', 1),
        warmup_iterations=model.get('warmup_iterations', 2)
    )


def describe_entities(entities: Sequence[TrackedEntity], target: Optional[Target] = None) -> List[str]:
    lines = []
    for entity in entities:
        marker = ' *' if target is not None and entity.id == target.id else ''
        lines.append(f"{entity.id} ({round(entity.score * 100)}%) - dist: {entity.distance_metric:.2f}{marker}")
    return lines


class FrameProcessor:
    """Detection filter, tracker and target selector run in that order per frame."""

    def __init__(self, config: Dict[str, Any]):
        detection = get_section(config, 'detection')
        self.score_threshold = detection.get('score_threshold', SCORE_THRESHOLD)
        self.category = detection.get('category', 'person')

        if not 0.0 <= self.score_threshold <= 1.0:
            raise ValueError(f"score_threshold must be in [0, 1]: {self.score_threshold}")

        self.debug_mode = bool(get_section(config, 'stream').get('debug_mode', False))

        self.tracker = create_tracker(config)
        self.selector = create_selector(config)
        self.snapshot = FrameSnapshot.empty()

    def process(
        self,
        raw_detections: List[Detection],
        now: float,
        frame_width: float,
        frame_height: float
    ) -> FrameSnapshot:
        detections = filter_detections(raw_detections, self.score_threshold, self.category)
        entities = self.tracker.update(detections, now, frame_width, frame_height)
        target = self.selector.select(entities, now)

        self.snapshot = FrameSnapshot(
            timestamp=now,
            entities=tuple(entities),
            target=target,
            alive=tuple(self.tracker.get_alive())
        )

        if self.debug_mode and logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Detected {len(entities)} {'people' if len(entities) != 1 else 'person'}, "
                         f"{len(self.snapshot.alive)} alive, target={target.id}")
            for line in describe_entities(self.snapshot.alive, target):
                logger.debug(f"  {line}")

        return self.snapshot

    def fallback(self, now: float) -> FrameSnapshot:
        """Publishes the center target with no entities; tracker state is left alone."""
        target = self.selector.select([], now)
        self.snapshot = FrameSnapshot(
            timestamp=now,
            entities=(),
            target=target,
            alive=tuple(self.tracker.get_alive())
        )
        return self.snapshot

    def get_stats(self) -> Dict[str, Dict]:
        return {
            'tracker': self.tracker.get_stats(),
            'selector': self.selector.get_stats()
        }
