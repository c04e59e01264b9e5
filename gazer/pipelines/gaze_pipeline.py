"""
Pipeline en vivo con dos cadencias sobre un único bucle asyncio:
- Detección: un fotograma a la vez, como máximo una inferencia en curso
- Render: tick del suavizador a la frecuencia de refresco, nunca bloquea
"""

import asyncio
import logging
import time
from contextlib import ExitStack
from typing import Any, Callable, Dict, Optional, Tuple, Union

from gazer.utils import VideoReader, get_section
from gazer.gaze import look_direction
from .frame_processor import FrameProcessor, FrameSnapshot, create_smoother, create_detector

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_HZ = 60.0


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class GazePipeline:
    def __init__(
        self,
        config: Dict[str, Any],
        detector_factory: Optional[Callable[[], Any]] = None,
        reader_factory: Optional[Callable[[Union[str, int]], Any]] = None,
        actuator: Optional[Callable[[float, float], None]] = None,
        clock: Callable[[], float] = monotonic_ms
    ):
        self.config = config

        logger.info("Initializing GazePipeline")

        self.processor = FrameProcessor(config)
        self.smoother = create_smoother(config)

        self.refresh_hz = float(get_section(config, 'smoothing').get('refresh_hz', DEFAULT_REFRESH_HZ))
        if self.refresh_hz <= 0:
            raise ValueError(f"refresh_hz must be positive: {self.refresh_hz}")

        self.detector_factory = detector_factory or (lambda: create_detector(config))
        self.reader_factory = reader_factory or VideoReader
        self.actuator = actuator or self._log_gaze
        self.clock = clock

        self.upstream_available = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._stop_requested = False

        self.stats = {
            'frames': 0,
            'detector_failures': 0,
            'reader_failures': 0,
            'render_ticks': 0
        }

    @property
    def snapshot(self) -> FrameSnapshot:
        return self.processor.snapshot

    def _log_gaze(self, x: float, y: float):
        if self.stats['render_ticks'] % 60 == 0:
            lx, ly, lz = look_direction(x / 100.0, y / 100.0)
            logger.debug(f"Gaze: ({x:.1f}%, {y:.1f}%) look=({lx:.2f}, {ly:.2f}, {lz:.2f}) "
                         f"target={self.snapshot.target.id}")

    def run(self, source: Union[str, int], duration_s: Optional[float] = None):
        asyncio.run(self.run_async(source, duration_s))

    def stop(self):
        self._stop_requested = True
        if self._loop is not None and self._stop_event is not None:
            self._loop.call_soon_threadsafe(self._stop_event.set)

    async def run_async(self, source: Union[str, int], duration_s: Optional[float] = None):
        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        if self._stop_requested:
            self._stop_event.set()

        if duration_s is not None:
            self._loop.call_later(duration_s, self._stop_event.set)

        render_task = asyncio.create_task(self._render_loop())

        try:
            upstream_lost = False
            with ExitStack() as stack:
                upstream = self._open_upstream(stack, source)
                if upstream is not None:
                    reader, detector = upstream
                    upstream_lost = await self._detection_loop(reader, detector)

            if upstream is None or upstream_lost:
                self.upstream_available = False
                logger.warning("Upstream unavailable - holding gaze on center target")
                self.processor.fallback(self.clock())
                await self._stop_event.wait()
        finally:
            self._stop_event.set()
            await render_task
            self.upstream_available = False
            self._log_final_statistics()

    def _open_upstream(self, stack: ExitStack, source: Union[str, int]) -> Optional[Tuple[Any, Any]]:
        logger.info(f"Connecting to input: {source}")
        try:
            reader = stack.enter_context(self.reader_factory(source))
        except Exception as e:
            logger.error(f"Could not open video source {source}: {e}")
            return None

        try:
            detector = self.detector_factory()
        except Exception as e:
            logger.error(f"Detector initialization failed: {e}")
            return None

        if hasattr(detector, 'close'):
            stack.callback(detector.close)

        if hasattr(detector, 'get_model_info'):
            logger.info(f"Detector ready: {detector.get_model_info()}")

        self.upstream_available = True
        return reader, detector

    async def _detection_loop(self, reader, detector) -> bool:
        """Runs until end of stream or stop; returns True if the reader failed."""
        logger.info("Starting detection loop")
        lost = False

        while not self._stop_event.is_set():
            try:
                ret, frame = await asyncio.to_thread(reader.read)
            except Exception as e:
                self.stats['reader_failures'] += 1
                logger.error(f"Video source failed after {self.stats['frames']} frames: {e}")
                lost = True
                break

            if not ret:
                logger.info("End of stream")
                break

            now = self.clock()
            try:
                detections = await asyncio.to_thread(detector.predict, frame)
            except Exception as e:
                self.stats['detector_failures'] += 1
                logger.warning(f"Detector failed on frame {self.stats['frames']}: {e}")
                detections = []

            frame_height, frame_width = frame.shape[:2]
            self.processor.process(detections, now, frame_width, frame_height)
            self.stats['frames'] += 1

        self.processor.fallback(self.clock())
        return lost

    async def _render_loop(self):
        interval = 1.0 / self.refresh_hz

        while not self._stop_event.is_set():
            self.render_tick(self.clock())
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    def render_tick(self, now: float) -> Tuple[float, float]:
        x, y = self.smoother.tick(now, self.snapshot.target)
        self.stats['render_ticks'] += 1
        self.actuator(x, y)
        return x, y

    def _log_final_statistics(self):
        logger.info("=" * 60)
        logger.info("GAZE PIPELINE STOPPED")
        logger.info(f"Frames processed: {self.stats['frames']}")
        logger.info(f"Render ticks: {self.stats['render_ticks']}")
        logger.info(f"Detector failures: {self.stats['detector_failures']}")
        logger.info(f"Reader failures: {self.stats['reader_failures']}")
        for name, stats in self.processor.get_stats().items():
            logger.info(f"{name.capitalize()} stats: {stats}")
        logger.info(f"Smoother stats: {self.smoother.get_stats()}")
        logger.info("=" * 60)
