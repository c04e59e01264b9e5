import pytest

from gazer.tracking import (
    BoundingBox, Detection, PersonTracker, IdentitySequence, IdentityColorAssigner,
    track, iou, predict_box, filter_detections
)

FRAME_W = 640
FRAME_H = 480


def person(x, y, w=50, h=50, score=0.9, category='person'):
    return Detection(box=BoundingBox(x, y, w, h), category=category, score=score)


def test_iou_horizontal_shift():
    a = BoundingBox(0, 0, 50, 50)
    b = BoundingBox(10, 0, 50, 50)
    assert iou(a, b) == pytest.approx(2000 / 3000)


def test_iou_disjoint_and_identical():
    a = BoundingBox(0, 0, 50, 50)
    assert iou(a, BoundingBox(100, 100, 50, 50)) == 0.0
    assert iou(a, BoundingBox(50, 0, 50, 50)) == 0.0
    assert iou(a, a) == pytest.approx(1.0)


def test_iou_degenerate_box_is_zero():
    a = BoundingBox(0, 0, 50, 50)
    assert iou(a, BoundingBox(10, 10, 0, 20)) == 0.0
    assert iou(BoundingBox(10, 10, 20, 0), a) == 0.0


def test_identity_stable_for_slow_motion():
    tracker = PersonTracker()
    ids = set()
    for i in range(12):
        entities = tracker.update([person(100 + 3 * i, 200 + i)], now=i * 33.0,
                                  frame_width=FRAME_W, frame_height=FRAME_H)
        assert len(entities) == 1
        ids.add(entities[0].id)
    assert ids == {'person_1'}


def test_velocity_is_one_step_difference():
    tracker = PersonTracker()
    first = tracker.update([person(100, 100)], 0.0, FRAME_W, FRAME_H)[0]
    assert first.velocity == (0.0, 0.0)

    second = tracker.update([person(104, 98)], 33.0, FRAME_W, FRAME_H)[0]
    assert second.id == first.id
    assert second.velocity == pytest.approx((4.0, -2.0))


def test_prediction_uses_velocity():
    tracker = PersonTracker()
    tracker.update([person(100, 100)], 0.0, FRAME_W, FRAME_H)
    entity = tracker.update([person(120, 100)], 33.0, FRAME_W, FRAME_H)[0]
    assert predict_box(entity) == BoundingBox(140, 100, 50, 50)

    # 150 vs. the unpredicted box at 120 would fall under the threshold
    again = tracker.update([person(150, 100)], 66.0, FRAME_W, FRAME_H)[0]
    assert again.id == entity.id


def test_expired_identity_is_never_reused():
    tracker = PersonTracker(expiry_ms=1000)
    first = tracker.update([person(100, 100)], 0.0, FRAME_W, FRAME_H)[0]
    later = tracker.update([person(100, 100)], 1500.0, FRAME_W, FRAME_H)[0]

    assert first.id == 'person_1'
    assert later.id == 'person_2'
    assert tracker.get_stats()['expired'] == 1


def test_expiry_boundary_is_inclusive():
    tracker = PersonTracker(expiry_ms=1000)
    first = tracker.update([person(100, 100)], 0.0, FRAME_W, FRAME_H)[0]
    later = tracker.update([person(100, 100)], 1000.0, FRAME_W, FRAME_H)[0]
    assert later.id == first.id


def test_short_occlusion_keeps_identity():
    tracker = PersonTracker()
    first = tracker.update([person(100, 100)], 0.0, FRAME_W, FRAME_H)[0]

    assert tracker.update([], 100.0, FRAME_W, FRAME_H) == []
    assert [e.id for e in tracker.get_alive()] == [first.id]

    back = tracker.update([person(102, 100)], 300.0, FRAME_W, FRAME_H)[0]
    assert back.id == first.id


def test_claimed_identity_mints_new_one():
    tracker = PersonTracker()
    tracker.update([person(100, 100)], 0.0, FRAME_W, FRAME_H)
    entities = tracker.update([person(100, 100), person(101, 100)], 33.0, FRAME_W, FRAME_H)

    assert [e.id for e in entities] == ['person_1', 'person_2']
    assert entities[1].velocity == (0.0, 0.0)


def test_best_overlap_wins():
    ids = IdentitySequence()
    previous = track([person(0, 0), person(40, 0)], [], 0.0, FRAME_W, FRAME_H, ids)
    current = track([person(35, 0)], previous, 33.0, FRAME_W, FRAME_H, ids)
    assert current[0].id == previous[1].id


def test_degenerate_detection_always_new_identity():
    ids = IdentitySequence()
    flat = Detection(box=BoundingBox(100, 100, 0, 50), category='person', score=0.9)
    first = track([flat], [], 0.0, FRAME_W, FRAME_H, ids)
    second = track([flat], first, 33.0, FRAME_W, FRAME_H, ids)
    assert first[0].id != second[0].id


def test_empty_detections_give_empty_output():
    assert track([], [], 0.0, FRAME_W, FRAME_H, IdentitySequence()) == []


def test_one_entity_per_detection():
    dets = [person(0, 0), person(200, 0), person(400, 0)]
    entities = track(dets, [], 0.0, FRAME_W, FRAME_H, IdentitySequence())
    assert len(entities) == 3
    assert len({e.id for e in entities}) == 3


def test_derived_geometry():
    entity = track([person(300, 100, w=40, h=240)], [], 0.0, FRAME_W, FRAME_H, IdentitySequence())[0]
    assert entity.center == (320.0, 220.0)
    assert entity.normalized_position == pytest.approx((0.5, 220 / 480))
    assert entity.distance_metric == pytest.approx(0.5)


def test_geometry_is_clamped():
    entity = track([person(600, -100, w=100, h=960)], [], 0.0, FRAME_W, FRAME_H, IdentitySequence())[0]
    assert entity.distance_metric == 1.0
    assert entity.normalized_position[0] == 1.0


def test_invalid_frame_size():
    with pytest.raises(ValueError):
        track([person(0, 0)], [], 0.0, 0, FRAME_H, IdentitySequence())


def test_colors_follow_identity():
    tracker = PersonTracker(color_assigner=IdentityColorAssigner(policy='palette'))
    first = tracker.update([person(100, 100)], 0.0, FRAME_W, FRAME_H)[0]
    second = tracker.update([person(101, 100)], 33.0, FRAME_W, FRAME_H)[0]
    assert first.color is not None
    assert second.color == first.color


def test_reset_does_not_rewind_ids():
    tracker = PersonTracker()
    tracker.update([person(100, 100)], 0.0, FRAME_W, FRAME_H)
    tracker.reset()
    entity = tracker.update([person(100, 100)], 33.0, FRAME_W, FRAME_H)[0]
    assert entity.id == 'person_2'


def test_filter_detections():
    dets = [
        person(0, 0, score=0.9),
        person(0, 0, score=0.1),
        person(0, 0, category='dog'),
        person(0, 0, category=None),
        person(0, 0, w=0),
        Detection(box=BoundingBox(float('nan'), 0, 10, 10), category='person', score=0.9),
        person(10, 10, score=0.25),
    ]
    kept = filter_detections(dets, score_threshold=0.25)
    assert kept == [dets[0], dets[6]]


def test_filter_detections_any_category():
    dets = [person(0, 0, category='dog'), person(0, 0, category='')]
    assert filter_detections(dets, score_threshold=0.2, category=None) == [dets[0]]


def test_invalid_tracker_parameters():
    with pytest.raises(ValueError):
        PersonTracker(iou_threshold=1.5)
    with pytest.raises(ValueError):
        PersonTracker(expiry_ms=0)
