"""
chartline.py

Command line entrypoint: compile a chart and print a JSON report.

Usage
- chartline path/to/chart.kson            summary and effect intervals
- chartline path/to/chart.kson --ticks    also list every score tick
- chartline --list                        list chart files under the configured songs directory
- chartline --run-tests                   run the pure logic self tests

Output
- {"ok": true, ...} on success, exit code 0
- {"ok": false, "error": "..."} on failure, exit code 2
"""

from __future__ import annotations

import argparse
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

import chart_engine
from config import AppConfig, load_config


_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("chartline")


def _init_logging(app_config: AppConfig, level_override: Optional[str] = None) -> None:
    if logging.getLogger().handlers:
        return

    level_name = (level_override or app_config.logging.level).strip().upper()
    logging.basicConfig(level=level_name, format=_LOG_FORMAT, encoding="utf-8")

    log_file = app_config.logging.log_file
    if log_file is not None:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_path, maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8")
        file_handler.setLevel(level_name)
        file_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logging.getLogger().addHandler(file_handler)


def _tick_payload(compiled: chart_engine.CompiledChart) -> List[Dict[str, Any]]:
    payload: List[Dict[str, Any]] = []
    for placed in compiled.score_ticks:
        tick = placed.tick
        entry: Dict[str, Any] = {
            "y": int(placed.y),
            "ms": round(compiled.chart.tick_to_ms(placed.y), 3),
            "kind": tick.kind,
            "lane": int(tick.lane),
        }
        if tick.kind == "laser":
            entry["pos"] = float(tick.pos)  # type: ignore[attr-defined]
        elif tick.kind == "slam":
            entry["start"] = float(tick.start)  # type: ignore[attr-defined]
            entry["end"] = float(tick.end)  # type: ignore[attr-defined]
        payload.append(entry)
    return payload


def build_report(
    compiled: chart_engine.CompiledChart,
    *,
    include_ticks: bool,
    include_effects: bool,
) -> Dict[str, Any]:
    summary = compiled.summary()
    report: Dict[str, Any] = {
        "ok": True,
        "title": compiled.title,
        "source_path": str(compiled.source_path) if compiled.source_path is not None else None,
        "resolution": int(compiled.chart.resolution),
        "duration_ms": round(compiled.duration_ms(), 3),
        "summary": {
            "chip_count": summary.chip_count,
            "hold_count": summary.hold_count,
            "laser_count": summary.laser_count,
            "slam_count": summary.slam_count,
            "total": summary.total,
        },
        "effect_interval_count": len(compiled.effect_timeline),
    }
    if include_ticks:
        report["ticks"] = _tick_payload(compiled)
    if include_effects:
        report["effects"] = [effect_interval.to_dict() for effect_interval in compiled.effect_timeline]
    return report


def _run_self_tests() -> None:
    import audio_effects
    import effect_params
    import score_timeline
    import timing_model

    timing_model._run_unit_tests()
    effect_params._run_unit_tests()
    audio_effects._run_unit_tests()
    score_timeline._run_unit_tests()
    chart_engine._run_chunk_tests()


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chartline", description="Compile chart score ticks and effect timelines.")
    parser.add_argument("chart", nargs="?", type=Path, help="Chart file to compile.")
    parser.add_argument("--config", type=Path, default=None, help="Config file (default: search standard locations).")
    parser.add_argument("--ticks", action="store_true", help="List every score tick in the report.")
    parser.add_argument("--no-effects", action="store_true", help="Leave effect intervals out of the report.")
    parser.add_argument("--list", action="store_true", help="List chart files under the songs directory.")
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level.",
    )
    parser.add_argument("--run-tests", action="store_true", help="Run pure logic tests.")
    return parser


def _print_json(payload: Dict[str, Any], indent: int) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=indent if indent > 0 else None))


def main(argv: Optional[List[str]] = None) -> int:
    args = build_argument_parser().parse_args(argv)

    if args.run_tests:
        _run_self_tests()
        print("Self tests passed.")
        return 0

    try:
        app_config, _config_path = load_config(args.config)
    except Exception as exception:
        _print_json({"ok": False, "error": str(exception)}, 2)
        return 2

    _init_logging(app_config, args.log_level)
    indent = int(app_config.output.indent)

    if args.list:
        chart_paths = chart_engine.find_chart_files(
            app_config.songs.songs_path,
            extension=app_config.songs.chart_extension,
        )
        _print_json({"ok": True, "charts": [str(path) for path in chart_paths]}, indent)
        return 0

    if args.chart is None:
        _print_json({"ok": False, "error": "No chart file given"}, indent)
        return 2

    engine = chart_engine.ChartEngine()
    try:
        compiled = engine.load_and_compile(args.chart)
    except (chart_engine.ChartNotFoundError, chart_engine.ChartLoadError) as exception:
        logger.error("Compile failed: %s", exception)
        _print_json({"ok": False, "error": str(exception)}, indent)
        return 2

    report = build_report(
        compiled,
        include_ticks=bool(args.ticks or app_config.output.include_ticks),
        include_effects=bool(app_config.output.include_effects and not args.no_effects),
    )
    _print_json(report, indent)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
