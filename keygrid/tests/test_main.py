import json

import pytest
import yaml

import main
from keygrid import data


def write_info(path, items):
    path.write_text(json.dumps({'layouts': {'LAYOUT': {'layout': items}}}))
    return path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        'paths': {'logs_dir': str(tmp_path / "logs"), 'output_dir': str(tmp_path / "out")},
        'logging': {'console_level': 'ERROR'},
    }))
    return path


def test_load_config_missing_file(tmp_path):
    assert main.load_config(str(tmp_path / "nope.yaml")) == {}


def test_convert(tmp_path, config_file, restore_logging):
    layout = write_info(tmp_path / "board.json", [{'x': 1, 'y': 0}, {'x': 0, 'y': 0}, {'x': 0, 'y': 1}])
    output = tmp_path / "board_out.json"
    assert main.main(['--config', str(config_file), '--mode', 'convert',
                      '--input', str(layout), '--output', str(output)]) == 0
    items = json.loads(output.read_text())['layouts']['board']['layout']
    assert [item['matrix'] for item in items] == [[0, 0], [0, 1], [1, 0]]


def test_convert_default_output(tmp_path, config_file, restore_logging):
    layout = write_info(tmp_path / "board.json", [{'x': 0, 'y': 0}])
    assert main.main(['--config', str(config_file), '--mode', 'convert', '--input', str(layout)]) == 0
    assert (tmp_path / "out" / "board_logical.json").exists()


def test_keep_order(tmp_path, config_file, restore_logging):
    layout = write_info(tmp_path / "board.json", [
        {'matrix': [0, 0], 'x': 0, 'y': 0}, {'matrix': [0, 7], 'x': 1, 'y': 0},
    ])
    output = tmp_path / "kept.json"
    assert main.main(['--config', str(config_file), '--mode', 'convert', '--keep-order',
                      '--input', str(layout), '--output', str(output)]) == 0
    items = json.loads(output.read_text())['layouts']['board']['layout']
    assert [item['matrix'] for item in items] == [[0, 0], [0, 7]]


def test_check(tmp_path, config_file, restore_logging):
    valid = write_info(tmp_path / "valid.json", [
        {'matrix': [0, 0], 'x': 0, 'y': 0}, {'matrix': [0, 1], 'x': 1, 'y': 0},
    ])
    invalid = write_info(tmp_path / "invalid.json", [
        {'matrix': [0, 1], 'x': 0, 'y': 0}, {'matrix': [0, 0], 'x': 1, 'y': 0},
    ])
    assert main.main(['--config', str(config_file), '--mode', 'check', '--input', str(valid)]) == 0
    assert main.main(['--config', str(config_file), '--mode', 'check', '--input', str(invalid)]) == 2


def test_check_rejects_devicetree(tmp_path, config_file, restore_logging):
    layout = tmp_path / "board.dtsi"
    layout.write_text('l { compatible = "zmk,physical-layout"; '
                      'keys = <&key_physical_attrs 100 100 0 0 0 0 0>; };')
    assert main.main(['--config', str(config_file), '--mode', 'check', '--input', str(layout)]) == 1
    assert main.main(['--config', str(config_file), '--mode', 'convert', '--input', str(layout)]) == 0


def test_convert_derives_once(tmp_path, config_file, restore_logging, monkeypatch):
    calls = []
    monkeypatch.setattr(data, 'ensure_logical_layout', lambda keys, thresholds=None: calls.append(keys))
    layout = write_info(tmp_path / "board.json", [{'x': 1, 'y': 0}, {'x': 0, 'y': 0}])
    assert main.main(['--config', str(config_file), '--mode', 'convert', '--input', str(layout)]) == 0
    assert calls == []

    assert main.main(['--config', str(config_file), '--mode', 'convert', '--keep-order',
                      '--input', str(layout)]) == 0
    assert len(calls) == 1


def test_plot(tmp_path, config_file, restore_logging):
    layout = write_info(tmp_path / "board.json", [{'x': 0, 'y': 0}, {'x': 1, 'y': 0}])
    output = tmp_path / "board.png"
    assert main.main(['--config', str(config_file), '--mode', 'plot',
                      '--input', str(layout), '--output', str(output)]) == 0
    assert output.exists()


def test_invalid_layout(tmp_path, config_file, restore_logging):
    layout = tmp_path / "board.json"
    layout.write_text("{}")
    assert main.main(['--config', str(config_file), '--mode', 'convert', '--input', str(layout)]) == 1


def test_non_numeric_csv(tmp_path, config_file, restore_logging):
    layout = tmp_path / "board.csv"
    layout.write_text("x,y\n0,0\nabc,1\n")
    assert main.main(['--config', str(config_file), '--mode', 'convert', '--input', str(layout)]) == 1


def test_invalid_config(tmp_path, restore_logging):
    config = tmp_path / "config.yaml"
    config.write_text(yaml.safe_dump({'thresholds': {'gap_threshold': -1}}))
    layout = write_info(tmp_path / "board.json", [{'x': 0, 'y': 0}])
    assert main.main(['--config', str(config), '--mode', 'convert', '--input', str(layout)]) == 1
