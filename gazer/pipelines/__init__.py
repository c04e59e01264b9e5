from .frame_processor import FrameProcessor, FrameSnapshot, describe_entities
from .gaze_pipeline import GazePipeline
from .batch_pipeline import BatchPipeline

__all__ = ['FrameProcessor', 'FrameSnapshot', 'describe_entities', 'GazePipeline', 'BatchPipeline']
