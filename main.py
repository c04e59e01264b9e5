import argparse
import sys
import logging
import signal
from pathlib import Path
from typing import Optional

from gazer import __version__
from gazer.utils import load_config, merge_configs
from gazer.pipelines import BatchPipeline, GazePipeline

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = 'configs/gaze_config.yml'


class GracefulKiller:
    def __init__(self, pipeline: GazePipeline):
        self.pipeline = pipeline
        self.kill_now = False
        signal.signal(signal.SIGINT, self.exit_gracefully)
        signal.signal(signal.SIGTERM, self.exit_gracefully)

    def exit_gracefully(self, signum, frame):
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.kill_now = True
        self.pipeline.stop()


def setup_logging(debug: bool = False, log_file: Optional[str] = 'gazer.log'):
    log_level = logging.DEBUG if debug else logging.INFO
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='a'))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=handlers
    )
    logger.info("Logging initialized")


def build_config(args: argparse.Namespace) -> dict:
    if not Path(args.config).exists():
        raise FileNotFoundError(f"Config not found: {args.config}")

    logger.info(f"Loading configuration: {args.config}")
    overrides = {}

    if args.score_threshold is not None:
        overrides['detection'] = {'score_threshold': args.score_threshold}
        logger.info(f"Score threshold override: {args.score_threshold}")

    if args.device:
        overrides['model'] = {'device': args.device}
        logger.info(f"Device override: {args.device}")

    if args.debug:
        overrides['stream'] = {'debug_mode': True}

    return merge_configs(load_config(args.config), overrides)


def run_live_mode(config: dict, source, duration: Optional[float]):
    logger.info("Starting LIVE mode")
    logger.info(f"Source: {source}")

    pipeline = GazePipeline(config)
    killer = GracefulKiller(pipeline)

    pipeline.run(source, duration_s=duration)

    if killer.kill_now:
        logger.info("Stopped by user")
    else:
        logger.info("Live session completed")


def run_batch_mode(config: dict, source: str, output_path: Optional[str]):
    logger.info("Starting BATCH mode")
    logger.info(f"Input: {source}")
    logger.info(f"Tracking output: {output_path}")

    pipeline = BatchPipeline(config)
    pipeline.process_video(source, output_path)
    logger.info("Batch processing completed successfully")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Gazer - multi-person tracking and gaze target arbitration',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Live mode (webcam 0):
    python main.py live --source 0 --debug

  Batch mode:
    python main.py batch --source video.mp4 --output outputs/tracking.json
        """
    )

    parser.add_argument('mode', choices=['live', 'batch'], help='live (camera/stream) or batch (video file)')
    parser.add_argument('--config', default=DEFAULT_CONFIG, help=f'Path to config file (default: {DEFAULT_CONFIG})')
    parser.add_argument('--source', help='Camera index, file path or stream URL (overrides config)')
    parser.add_argument('--output', help='Tracking JSON output path for batch mode (overrides config)')
    parser.add_argument('--debug', action='store_true', help='Verbose per-frame logging')
    parser.add_argument('--score-threshold', type=float, help='Detection score threshold (0.0-1.0)')
    parser.add_argument('--device', choices=['cuda', 'cpu'], help='Force specific device')
    parser.add_argument('--duration', type=float, help='Stop live mode after this many seconds')
    parser.add_argument('--no-logging-file', action='store_true', help='Disable logging to file')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    args = parser.parse_args(argv)

    setup_logging(args.debug, None if args.no_logging_file else 'gazer.log')

    try:
        config = build_config(args)
        stream = config.get('stream') or {}

        if args.mode == 'live':
            source = args.source if args.source is not None else stream.get('source', 0)
            run_live_mode(config, source, args.duration)
        else:
            source = args.source or stream.get('source')
            if source is None:
                parser.error("batch mode requires --source")
            output_path = args.output or (config.get('output') or {}).get('tracking_path')
            run_batch_mode(config, str(source), output_path)

        logger.info("Application finished successfully")
        return 0

    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
        return 0
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
