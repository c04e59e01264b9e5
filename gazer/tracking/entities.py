from dataclasses import dataclass, field
from typing import Optional, Tuple

Color = Tuple[int, int, int]

CENTER_TARGET_ID = "center"


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in pixel space, origin at the top-left corner."""
    origin_x: float
    origin_y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        if self.width <= 0 or self.height <= 0:
            return 0.0
        return self.width * self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.origin_x + self.width / 2, self.origin_y + self.height / 2)

    def is_degenerate(self) -> bool:
        return self.area <= 0.0

    def translated(self, dx: float, dy: float) -> 'BoundingBox':
        return BoundingBox(self.origin_x + dx, self.origin_y + dy, self.width, self.height)

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> 'BoundingBox':
        return cls(float(x1), float(y1), float(x2 - x1), float(y2 - y1))


@dataclass(frozen=True)
class Detection:
    box: BoundingBox
    category: Optional[str]
    score: float


@dataclass
class TrackedEntity:
    id: str
    sequence: int
    box: BoundingBox
    center: Tuple[float, float]
    velocity: Tuple[float, float]
    normalized_position: Tuple[float, float]
    distance_metric: float
    score: float
    last_seen_at: float
    color: Optional[Color] = None
    category: Optional[str] = "person"

    def age_ms(self, now: float) -> float:
        return now - self.last_seen_at

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'box': [self.box.origin_x, self.box.origin_y, self.box.width, self.box.height],
            'center': list(self.center),
            'velocity': list(self.velocity),
            'x': self.normalized_position[0],
            'y': self.normalized_position[1],
            'distance': self.distance_metric,
            'score': self.score,
            'color': list(self.color) if self.color is not None else None,
            'last_seen_at': self.last_seen_at,
        }


@dataclass(frozen=True)
class Target:
    """Current gaze target; either a live entity or the center sentinel."""
    id: str
    x: float
    y: float
    distance_metric: float = 0.0
    score: float = 0.0
    color: Optional[Color] = field(default=None, compare=False)

    @property
    def is_center(self) -> bool:
        return self.id == CENTER_TARGET_ID

    @classmethod
    def center(cls) -> 'Target':
        return cls(id=CENTER_TARGET_ID, x=0.5, y=0.5, distance_metric=0.0, score=0.0)

    @classmethod
    def from_entity(cls, entity: TrackedEntity) -> 'Target':
        x, y = entity.normalized_position
        return cls(
            id=entity.id,
            x=x,
            y=y,
            distance_metric=entity.distance_metric,
            score=entity.score,
            color=entity.color,
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'x': self.x,
            'y': self.y,
            'distance': self.distance_metric,
            'score': self.score,
            'color': list(self.color) if self.color is not None else None,
        }
