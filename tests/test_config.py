from pathlib import Path

import pytest

from gazer.utils import load_config, merge_configs, get_section, parse_source
from gazer.pipelines import FrameProcessor
from gazer.pipelines.frame_processor import create_smoother

CONFIG_PATH = Path(__file__).resolve().parent.parent / 'configs' / 'gaze_config.yml'


def test_shipped_config_defaults():
    config = load_config(str(CONFIG_PATH))

    assert config['tracking']['iou_threshold'] == 0.3
    assert config['tracking']['expiry_ms'] == 1000
    assert config['selection']['bounce_interval_ms'] == 1000
    assert config['smoothing']['jitter_threshold'] == 0.3
    assert config['smoothing']['speed'] == 0.02
    assert config['smoothing']['damping'] == 0.95
    assert config['smoothing']['frame_baseline_ms'] == 16.6

    processor = FrameProcessor(config)
    assert processor.score_threshold == 0.25
    assert processor.tracker.iou_threshold == 0.3
    assert create_smoother(config).speed == 0.02


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / 'nope.yml'))


def test_empty_config_file(tmp_path):
    path = tmp_path / 'empty.yml'
    path.write_text('')
    assert load_config(str(path)) == {}


def test_non_mapping_config_file(tmp_path):
    path = tmp_path / 'list.yml'
    path.write_text('- a\n- b\n')
    with pytest.raises(ValueError):
        load_config(str(path))


def test_merge_is_nested_and_later_wins():
    base = {'tracking': {'iou_threshold': 0.3, 'expiry_ms': 1000}, 'stream': {'source': 0}}
    override = {'tracking': {'expiry_ms': 500}}
    merged = merge_configs(base, None, override)

    assert merged['tracking'] == {'iou_threshold': 0.3, 'expiry_ms': 500}
    assert merged['stream'] == {'source': 0}
    assert base['tracking']['expiry_ms'] == 1000


def test_defaults_apply_to_missing_sections():
    processor = FrameProcessor({})
    assert processor.tracker.expiry_ms == 1000
    assert processor.selector.bounce_interval_ms == 1000


def test_bad_section_and_threshold():
    with pytest.raises(ValueError):
        get_section({'tracking': 3}, 'tracking')
    with pytest.raises(ValueError):
        FrameProcessor({'detection': {'score_threshold': 2.0}})


def test_parse_source():
    assert parse_source('0') == 0
    assert parse_source(' 2 ') == 2
    assert parse_source('video.mp4') == 'video.mp4'
    assert parse_source(1) == 1
