from __future__ import annotations

import json

import pytest

import chartline


_CHART_DOCUMENT = {
    "meta": {"title": "Cli"},
    "beat": {"bpm": [[0, 120]], "resolution": 192},
    "note": {
        "bt": [[0], [[0, 192]], [], []],
        "fx": [[], []],
        "laser": [[[0, [[0, 0.0], [96, 1.0, 0.0]]]], []],
    },
    "audio": {
        "audio_effect": {
            "laser": {
                "def": {"pf": {"type": "peaking_filter", "v": {"freq": "100Hz"}}},
                "pulse_event": {"pf": [0]},
            }
        }
    },
}


@pytest.fixture
def chart_path(tmp_path, monkeypatch):
    config_path = tmp_path / "chartline_config.json"
    config_path.write_text(json.dumps({"output": {"indent": 0}, "songs": {"songs_path": str(tmp_path)}}), encoding="utf-8")
    monkeypatch.setenv("CHARTLINE_CONFIG_PATH", str(config_path))

    path = tmp_path / "cli.kson"
    path.write_text(json.dumps(_CHART_DOCUMENT), encoding="utf-8")
    return path


def _output(capsys):
    return json.loads(capsys.readouterr().out)


def test_report_for_chart(chart_path, capsys):
    assert chartline.main([str(chart_path)]) == 0
    report = _output(capsys)

    assert report["ok"] is True
    assert report["title"] == "Cli"
    assert report["resolution"] == 192
    # chip at 0, hold ticks 48/96/144, laser tick 48 and the slam at 96.
    assert report["summary"] == {"chip_count": 1, "hold_count": 3, "laser_count": 1, "slam_count": 1, "total": 6}
    assert "ticks" not in report
    assert report["effect_interval_count"] == 1
    assert report["effects"][0]["effect"]["type"] == "peaking_filter"
    assert report["effects"][0]["effect"]["v"]["freq"] == "100Hz"


def test_tick_listing(chart_path, capsys):
    assert chartline.main([str(chart_path), "--ticks", "--no-effects"]) == 0
    report = _output(capsys)

    assert "effects" not in report
    ticks = report["ticks"]
    assert [tick["y"] for tick in ticks] == [0, 48, 48, 96, 96, 144]
    slam = next(tick for tick in ticks if tick["kind"] == "slam")
    assert slam == {"y": 96, "ms": 250.0, "kind": "slam", "lane": 0, "start": 1.0, "end": 0.0}


def test_list_charts(chart_path, capsys):
    assert chartline.main(["--list"]) == 0
    assert _output(capsys)["charts"] == [str(chart_path)]


def test_missing_chart_reports_error(chart_path, capsys):
    assert chartline.main([str(chart_path.with_name("missing.kson"))]) == 2
    report = _output(capsys)
    assert report["ok"] is False
    assert "missing.kson" in report["error"]


def test_no_chart_argument(chart_path, capsys):
    assert chartline.main([]) == 2
    assert _output(capsys)["ok"] is False
