import json
import logging
import time
import numpy as np
from pathlib import Path
from typing import Optional, Dict, Any, Callable
from tqdm import tqdm
from collections import deque

from gazer.tracking import TrackedEntity, to_css
from gazer.utils import VideoReader
from .frame_processor import FrameProcessor, create_smoother, create_detector

logger = logging.getLogger(__name__)


def entity_record(entity: TrackedEntity) -> Dict[str, Any]:
    record = entity.to_dict()
    record['css_color'] = to_css(entity.color)
    return record


class BatchPipeline:
    def __init__(
        self,
        config: Dict[str, Any],
        detector_factory: Optional[Callable[[], Any]] = None,
        reader_factory: Optional[Callable[[str], Any]] = None
    ):
        self.config = config

        logger.info("Initializing BatchPipeline")

        self.processor = FrameProcessor(config)
        self.smoother = create_smoother(config)
        self.detector_factory = detector_factory or (lambda: create_detector(config))
        self.reader_factory = reader_factory or VideoReader

        self.stats = {
            'total_frames': 0,
            'frames_with_people': 0,
            'center_frames': 0,
            'detector_failures': 0,
            'processing_times': deque(maxlen=1000),
            'start_time': None,
            'end_time': None
        }

    def process_video(self, input_path: str, tracking_output_path: Optional[str] = None) -> Dict[str, Any]:
        self._validate_input(input_path)

        logger.info(f"Processing video: {input_path}")

        tracking_data = []
        self.stats['start_time'] = time.time()

        with self.reader_factory(input_path) as reader:
            detector = self.detector_factory()
            if hasattr(detector, 'get_model_info'):
                logger.info(f"Detector ready: {detector.get_model_info()}")
            fps = reader.fps if reader.fps and reader.fps > 0 else 30.0
            total = reader.total_frames if reader.total_frames > 0 else None

            pbar = tqdm(total=total, desc="Processing", unit="frame", ncols=100)
            frame_idx = 0

            try:
                while True:
                    frame_start = time.time()

                    ret, frame = reader.read()
                    if not ret:
                        break

                    timestamp_ms = frame_idx * 1000.0 / fps
                    try:
                        detections = detector.predict(frame)
                    except Exception as e:
                        self.stats['detector_failures'] += 1
                        logger.warning(f"Detector failed on frame {frame_idx}: {e}")
                        detections = []

                    frame_height, frame_width = frame.shape[:2]
                    snapshot = self.processor.process(detections, timestamp_ms, frame_width, frame_height)
                    gaze_x, gaze_y = self.smoother.tick(timestamp_ms, snapshot.target)

                    self.stats['total_frames'] += 1
                    if snapshot.entities:
                        self.stats['frames_with_people'] += 1
                    if snapshot.target.is_center:
                        self.stats['center_frames'] += 1

                    tracking_data.append({
                        'frame': frame_idx,
                        'timestamp_ms': timestamp_ms,
                        'entities': [entity_record(e) for e in snapshot.entities],
                        'target': snapshot.target.to_dict(),
                        'gaze': [gaze_x, gaze_y]
                    })

                    self.stats['processing_times'].append((time.time() - frame_start) * 1000)
                    frame_idx += 1

                    if frame_idx % 100 == 0:
                        pbar.set_postfix({'ms/frame': f"{np.mean(self.stats['processing_times']):.1f}"})
                    pbar.update(1)
            finally:
                pbar.close()
                if hasattr(detector, 'close'):
                    detector.close()
                self.stats['end_time'] = time.time()

        output_data = {
            'metadata': self._build_metadata(input_path, fps),
            'tracking_data': tracking_data
        }

        if tracking_output_path:
            self._save_outputs(output_data, tracking_output_path)

        self._log_final_statistics()
        return output_data

    def _validate_input(self, input_path: str):
        path = Path(input_path)
        if not path.exists():
            raise FileNotFoundError(f"Input video not found: {input_path}")
        if not path.is_file():
            raise ValueError(f"Input path is not a file: {input_path}")

    def _build_metadata(self, input_path: str, fps: float) -> Dict[str, Any]:
        total = self.stats['total_frames']
        tracker_stats = self.processor.tracker.get_stats()
        return {
            'video_input': str(input_path),
            'fps': fps,
            'total_frames': total,
            'frames_with_people': self.stats['frames_with_people'],
            'center_frames': self.stats['center_frames'],
            'detector_failures': self.stats['detector_failures'],
            'identities_minted': tracker_stats['minted'],
            'presence_rate': self.stats['frames_with_people'] / total if total > 0 else 0
        }

    def _save_outputs(self, output_data: Dict[str, Any], tracking_output_path: str):
        Path(tracking_output_path).parent.mkdir(parents=True, exist_ok=True)
        with open(tracking_output_path, 'w') as f:
            json.dump(output_data, f, indent=2)
        logger.info(f"Tracking data saved to: {tracking_output_path}")

    def _log_final_statistics(self):
        logger.info("=" * 60)
        logger.info("BATCH PROCESSING COMPLETE")
        logger.info("=" * 60)

        total_time = self.stats['end_time'] - self.stats['start_time']
        fps = self.stats['total_frames'] / total_time if total_time > 0 else 0

        logger.info(f"Total frames: {self.stats['total_frames']}")
        logger.info(f"Frames with people: {self.stats['frames_with_people']}")
        logger.info(f"Center fallback frames: {self.stats['center_frames']}")
        logger.info(f"Detector failures: {self.stats['detector_failures']}")
        logger.info(f"Average FPS: {fps:.2f}")

        if self.stats['processing_times']:
            logger.info(f"Avg processing time: {np.mean(self.stats['processing_times']):.2f}ms/frame")

        for name, stats in self.processor.get_stats().items():
            logger.info(f"{name.capitalize()} stats: {stats}")
        logger.info(f"Smoother stats: {self.smoother.get_stats()}")
        logger.info("=" * 60)
