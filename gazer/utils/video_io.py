import cv2
import numpy as np
import logging
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)


def parse_source(source: Union[str, int]) -> Union[str, int]:
    """Camera indices arrive from the CLI/YAML as strings like '0'."""
    if isinstance(source, str) and source.strip().isdigit():
        return int(source.strip())
    return source


class VideoReader:
    def __init__(self, source: Union[str, int]):
        self.source = parse_source(source)
        self.cap = cv2.VideoCapture(self.source)

        if not self.cap.isOpened():
            self.cap.release()
            raise IOError(f"Could not open video source: {source}")

        self.fps = self.cap.get(cv2.CAP_PROP_FPS) or 30.0
        self.width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.total_frames = int(self.cap.get(cv2.CAP_PROP_FRAME_COUNT))

        self.frame_count = 0
        logger.info(f"Opened {self.source}: {self.width}x{self.height} @ {self.fps:.1f}fps")

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        ret, frame = self.cap.read()
        if ret:
            self.frame_count += 1
        return ret, frame

    def release(self):
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.info(f"Released video source: {self.source} ({self.frame_count} frames read)")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
