"""
Detector de personas usando RF-DETR (pesos COCO).

Colaborador externo del núcleo: recibe un fotograma BGR y devuelve una
lista de Detection en píxeles. El filtrado por categoría y umbral se
aplica después, con filter_detections.
"""

import numpy as np
import torch
import logging
import time
import supervision as sv
from typing import Optional, List, Dict
from pathlib import Path
from collections import deque
import cv2

from gazer.tracking.entities import BoundingBox, Detection

logger = logging.getLogger(__name__)

COCO_PERSON_CLASS_ID = 1


class PersonDetector:

    def __init__(
        self,
        model_path: Optional[str] = None,
        confidence_threshold: float = 0.2,
        device: Optional[str] = None,
        imgsz: int = 560,
        person_class_id: int = COCO_PERSON_CLASS_ID,
        warmup_iterations: int = 2
    ):
        try:
            from rfdetr import RFDETRBase
        except ImportError:
            raise ImportError("RF-DETR not installed. Run: pip install rfdetr supervision")

        self.model_path = Path(model_path) if model_path else None
        self.confidence_threshold = confidence_threshold
        self.imgsz = imgsz
        self.person_class_id = person_class_id
        self.warmup_iterations = warmup_iterations

        if device is None:
            self.device = 'cuda' if torch.cuda.is_available() else 'cpu'
        else:
            self.device = device

        logger.info("Initializing PersonDetector with RF-DETR Base")
        logger.info(f"Device: {self.device}")
        logger.info(f"Image size: {self.imgsz}")

        if self.model_path and self.model_path.exists():
            logger.info(f"Loading checkpoint: {self.model_path}")
            self.model = RFDETRBase(resolution=self.imgsz, pretrain_weights=str(self.model_path))
        else:
            logger.info("Using COCO pretrained weights")
            self.model = RFDETRBase(resolution=self.imgsz)

        self.model.optimize_for_inference()

        self.inference_times = deque(maxlen=100)
        self.stats = {
            'total_inferences': 0,
            'total_detections': 0,
            'empty_frames': 0
        }

        self._warmup()

        logger.info("PersonDetector initialized successfully")

    def _warmup(self):
        logger.info(f"Warming up model ({self.warmup_iterations} iterations)...")
        dummy_frame = np.zeros((self.imgsz, self.imgsz, 3), dtype=np.uint8)

        with torch.no_grad():
            for i in range(self.warmup_iterations):
                start = time.time()
                _ = self.model.predict(dummy_frame, threshold=self.confidence_threshold)
                logger.debug(f"Warmup {i+1}/{self.warmup_iterations}: {(time.time() - start) * 1000:.2f}ms")

    def predict(self, frame: np.ndarray) -> List[Detection]:
        start_time = time.time()
        self.stats['total_inferences'] += 1

        if len(frame.shape) == 2:
            image = cv2.cvtColor(frame, cv2.COLOR_GRAY2RGB)
        elif frame.shape[2] == 4:
            image = cv2.cvtColor(frame, cv2.COLOR_BGRA2RGB)
        else:
            image = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

        with torch.no_grad():
            detections_sv = self.model.predict(image, threshold=self.confidence_threshold)

        self.inference_times.append((time.time() - start_time) * 1000)

        detections = self._parse_sv_detections(detections_sv)

        if not detections:
            self.stats['empty_frames'] += 1
        else:
            self.stats['total_detections'] += len(detections)

        if self.stats['total_inferences'] % 100 == 0:
            logger.debug(f"Detector stats: inferences={self.stats['total_inferences']}, "
                        f"avg_time={np.mean(self.inference_times):.2f}ms")

        return detections

    def _parse_sv_detections(self, detections_sv: sv.Detections) -> List[Detection]:
        detections = []

        if detections_sv is None or len(detections_sv) == 0:
            return detections

        for i in range(len(detections_sv)):
            x1, y1, x2, y2 = detections_sv.xyxy[i]
            cls_id = int(detections_sv.class_id[i])
            category = 'person' if cls_id == self.person_class_id else str(cls_id)

            detections.append(Detection(
                box=BoundingBox.from_xyxy(x1, y1, x2, y2),
                category=category,
                score=float(detections_sv.confidence[i])
            ))

        return detections

    def get_stats(self) -> Dict:
        return self.stats.copy()

    def get_model_info(self) -> Dict:
        return {
            'model': 'RF-DETR Base',
            'device': self.device,
            'imgsz': self.imgsz,
            'confidence_threshold': self.confidence_threshold
        }

    def close(self):
        logger.info("Releasing PersonDetector")
        self.model = None
        if torch.cuda.is_available():
            torch.cuda.empty_cache()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
