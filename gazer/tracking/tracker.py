import numpy as np
import logging
from typing import Optional, Tuple, List, Dict, Iterable

from .entities import BoundingBox, Detection, TrackedEntity
from .colors import IdentityColorAssigner

logger = logging.getLogger(__name__)

IOU_THRESHOLD = 0.3
EXPIRY_MS = 1000.0
SCORE_THRESHOLD = 0.25


def _clamp01(value: float) -> float:
    return float(min(1.0, max(0.0, value)))


def iou(a: BoundingBox, b: BoundingBox) -> float:
    if a.is_degenerate() or b.is_degenerate():
        return 0.0

    inter_left = max(a.origin_x, b.origin_x)
    inter_top = max(a.origin_y, b.origin_y)
    inter_right = min(a.origin_x + a.width, b.origin_x + b.width)
    inter_bottom = min(a.origin_y + a.height, b.origin_y + b.height)

    if inter_right <= inter_left or inter_bottom <= inter_top:
        return 0.0

    inter_area = (inter_right - inter_left) * (inter_bottom - inter_top)
    union_area = a.area + b.area - inter_area

    return inter_area / union_area if union_area > 0 else 0.0


def predict_box(entity: TrackedEntity) -> BoundingBox:
    vx, vy = entity.velocity
    return entity.box.translated(vx, vy)


def match_to_previous(
    box: BoundingBox,
    candidates: List[Tuple[TrackedEntity, BoundingBox]],
    iou_threshold: float = IOU_THRESHOLD
) -> Optional[TrackedEntity]:
    """
    Greedy best-overlap match against predicted boxes.

    Only an IOU strictly above the threshold counts; on equal IOU the
    candidate that comes first in iteration order wins.
    """
    best = None
    best_score = iou_threshold

    for entity, predicted in candidates:
        overlap = iou(box, predicted)
        if overlap > best_score:
            best = entity
            best_score = overlap

    return best


def filter_detections(
    detections: Iterable[Detection],
    score_threshold: float = SCORE_THRESHOLD,
    category: Optional[str] = 'person'
) -> List[Detection]:
    kept = []
    for det in detections:
        if det.score < score_threshold:
            continue
        if not det.category:
            logger.debug("Skipping detection without category")
            continue
        if category is not None and det.category != category:
            continue
        coords = np.array([det.box.origin_x, det.box.origin_y, det.box.width, det.box.height], dtype=np.float64)
        if not np.all(np.isfinite(coords)) or det.box.is_degenerate():
            logger.debug(f"Skipping malformed detection box: {det.box}")
            continue
        kept.append(det)
    return kept


class IdentitySequence:
    """Monotonic identity counter; an issued id is never handed out again."""

    def __init__(self, prefix: str = 'person', start: int = 1):
        self.prefix = prefix
        self.next_value = start
        self.issued = 0

    def next(self) -> Tuple[int, str]:
        sequence = self.next_value
        self.next_value += 1
        self.issued += 1
        return sequence, f"{self.prefix}_{sequence}"


def track(
    detections: List[Detection],
    previous_entities: List[TrackedEntity],
    now: float,
    frame_width: float,
    frame_height: float,
    ids: IdentitySequence,
    iou_threshold: float = IOU_THRESHOLD,
    expiry_ms: float = EXPIRY_MS,
    colors: Optional[IdentityColorAssigner] = None
) -> List[TrackedEntity]:
    if frame_width <= 0 or frame_height <= 0:
        raise ValueError(f"Invalid frame size: {frame_width}x{frame_height}")

    candidates = [
        (entity, predict_box(entity))
        for entity in previous_entities
        if now - entity.last_seen_at <= expiry_ms
    ]

    claimed = set()
    entities = []

    for det in detections:
        cx, cy = det.box.center
        previous = match_to_previous(det.box, candidates, iou_threshold)

        if previous is None or previous.id in claimed:
            sequence, entity_id = ids.next()
            velocity = (0.0, 0.0)
            color = None
        else:
            sequence, entity_id = previous.sequence, previous.id
            px, py = previous.center
            velocity = (cx - px, cy - py)
            color = previous.color

        claimed.add(entity_id)

        if colors is not None:
            color = colors.color_for(entity_id, sequence)

        entities.append(TrackedEntity(
            id=entity_id,
            sequence=sequence,
            box=det.box,
            center=(cx, cy),
            velocity=velocity,
            normalized_position=(_clamp01(cx / frame_width), _clamp01(cy / frame_height)),
            distance_metric=_clamp01(det.box.height / frame_height),
            score=float(det.score),
            last_seen_at=now,
            color=color,
            category=det.category,
        ))

    return entities


class PersonTracker:
    def __init__(
        self,
        iou_threshold: float = IOU_THRESHOLD,
        expiry_ms: float = EXPIRY_MS,
        color_assigner: Optional[IdentityColorAssigner] = None,
        id_prefix: str = 'person'
    ):
        if not 0.0 <= iou_threshold < 1.0:
            raise ValueError(f"iou_threshold must be in [0, 1): {iou_threshold}")
        if expiry_ms <= 0:
            raise ValueError(f"expiry_ms must be positive: {expiry_ms}")

        self.iou_threshold = iou_threshold
        self.expiry_ms = expiry_ms
        self.colors = color_assigner if color_assigner is not None else IdentityColorAssigner()
        self.ids = IdentitySequence(prefix=id_prefix)

        self.alive: List[TrackedEntity] = []

        self.stats = {
            'total_updates': 0,
            'total_detections': 0,
            'matched': 0,
            'minted': 0,
            'expired': 0
        }

        logger.info(f"PersonTracker initialized: iou_threshold={iou_threshold}, expiry_ms={expiry_ms}")

    def update(
        self,
        detections: List[Detection],
        now: float,
        frame_width: float,
        frame_height: float
    ) -> List[TrackedEntity]:
        self.stats['total_updates'] += 1
        self.stats['total_detections'] += len(detections)

        previous = self.alive
        issued_before = self.ids.issued

        entities = track(
            detections,
            previous,
            now,
            frame_width,
            frame_height,
            self.ids,
            iou_threshold=self.iou_threshold,
            expiry_ms=self.expiry_ms,
            colors=self.colors
        )

        minted = self.ids.issued - issued_before
        self.stats['minted'] += minted
        self.stats['matched'] += len(entities) - minted

        current_ids = {e.id for e in entities}
        retained = []
        for entity in previous:
            if entity.id in current_ids:
                continue
            if now - entity.last_seen_at > self.expiry_ms:
                self.stats['expired'] += 1
                self.colors.forget(entity.id)
                logger.debug(f"Identity {entity.id} expired after {entity.age_ms(now):.0f}ms")
            else:
                retained.append(entity)

        self.alive = entities + retained

        if minted:
            logger.debug(f"Minted {minted} new identities (alive={len(self.alive)})")

        if self.stats['total_updates'] % 100 == 0:
            logger.debug(f"Tracker stats: updates={self.stats['total_updates']}, "
                        f"matched={self.stats['matched']}, minted={self.stats['minted']}, "
                        f"expired={self.stats['expired']}")

        return entities

    def get_alive(self) -> List[TrackedEntity]:
        return list(self.alive)

    def reset(self):
        logger.info("Resetting PersonTracker")
        for entity in self.alive:
            self.colors.forget(entity.id)
        self.alive = []

    def get_stats(self) -> Dict:
        return self.stats.copy()
