from .config_loader import load_config, merge_configs, get_section
from .video_io import VideoReader, parse_source

__all__ = ['load_config', 'merge_configs', 'get_section', 'VideoReader', 'parse_source']
