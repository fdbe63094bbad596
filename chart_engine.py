# -*- coding: utf-8 -*-
########################
# chart_engine.py
########################
# Purpose:
# - Load and compile charts in one call.
# - Compilation turns a Chart into its Score Tick Timeline and Effect Interval Timeline.
#
########################
# Key Logic:
# - Compilation is one-shot per chart load. Both timelines come from the same immutable chart.
# - Strict contract:
#   - Never compile a chart that failed loading.
#   - A missing chart file is a first class outcome (ChartNotFoundError).
#   - A file that exists but cannot be loaded raises ChartLoadError wrapping the loader error.
# - Chart discovery under a songs directory is deterministic (sorted by path).
#
########################
# Interfaces:
# Public exceptions:
# - class ChartNotFoundError(Exception)
# - class ChartLoadError(Exception)
#
# Public dataclasses:
# - @dataclass(frozen=True) class CompiledChart
#   - chart: chart_models.Chart
#   - title: str
#   - source_path: Optional[pathlib.Path]
#   - score_ticks: score_timeline.ScoreTicks
#   - effect_timeline: tuple[effect_timeline.EffectInterval, ...]
#   - summary() -> score_timeline.ScoreTickSummary
#   - duration_ms() -> float
#
# Public classes:
# - class ChartEngine
#   - compile(chart: chart_models.Chart, *, title: str = "", source_path: Optional[Path] = None) -> CompiledChart
#   - load_and_compile(chart_path: pathlib.Path) -> CompiledChart
#     - Raises ChartNotFoundError if the file does not exist.
#     - Raises ChartLoadError if the file exists but cannot be parsed or validated.
#
# Public functions:
# - find_chart_files(songs_path: pathlib.Path, *, extension: str = ".kson") -> list[pathlib.Path]
#
########################
# Smoke Tests:
#   - python chart_engine.py
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from chart_models import Chart
import effect_timeline
import kson_store
import score_timeline


logger = logging.getLogger(__name__)


class ChartNotFoundError(Exception):
    """Raised when the requested chart file does not exist."""


class ChartLoadError(Exception):
    """Raised when a chart file exists but fails parsing or validation."""


@dataclass(frozen=True)
class CompiledChart:
    chart: Chart
    title: str
    source_path: Optional[Path]
    score_ticks: score_timeline.ScoreTicks
    effect_timeline: Tuple[effect_timeline.EffectInterval, ...]

    def summary(self) -> score_timeline.ScoreTickSummary:
        return self.score_ticks.summary()

    def duration_ms(self) -> float:
        return float(self.chart.tick_to_ms(self.chart.last_tick()))


def find_chart_files(songs_path: Path, *, extension: str = ".kson") -> List[Path]:
    directory_path = Path(songs_path)
    if not directory_path.exists() or not directory_path.is_dir():
        return []
    suffix = extension if extension.startswith(".") else "." + extension
    return sorted(
        [path for path in directory_path.rglob("*" + suffix) if path.is_file()],
        key=lambda item: str(item),
    )


class ChartEngine:
    def compile(self, chart: Chart, *, title: str = "", source_path: Optional[Path] = None) -> CompiledChart:
        label = title or chart.title or (source_path.name if source_path is not None else "<chart>")
        logger.info("Compiling chart %r", label)
        return CompiledChart(
            chart=chart,
            title=title or chart.title,
            source_path=source_path,
            score_ticks=score_timeline.compile_score_ticks(chart),
            effect_timeline=effect_timeline.build_effect_timeline(chart),
        )

    def load_and_compile(self, chart_path: Path) -> CompiledChart:
        resolved_path = Path(chart_path)
        if not resolved_path.is_file():
            raise ChartNotFoundError(f"No chart file at {resolved_path}")

        try:
            loaded = kson_store.load_chart(resolved_path)
        except kson_store.KsonError as exc:
            raise ChartLoadError(f"Failed to load chart {resolved_path}: {exc}") from exc

        return self.compile(loaded.chart, title=loaded.title, source_path=resolved_path)


def _assert(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def _run_chunk_tests() -> None:
    import test_chart

    engine = ChartEngine()

    compiled = engine.compile(test_chart.build_test_chart(difficulty="easy"))
    _assert(compiled.summary().total == len(compiled.score_ticks), "Summary total must match timeline length")
    _assert(len(compiled.effect_timeline) > 0, "Expected effect intervals")

    # Idempotence: a second compile yields equal timelines.
    again = engine.compile(test_chart.build_test_chart(difficulty="easy"))
    _assert(again.score_ticks == compiled.score_ticks, "Expected identical score ticks")
    _assert(again.effect_timeline == compiled.effect_timeline, "Expected identical effect timeline")

    try:
        engine.load_and_compile(Path("missing_chart_for_smoke_test.kson"))
    except ChartNotFoundError:
        pass
    else:
        raise AssertionError("Expected ChartNotFoundError for missing chart file")


def main() -> int:
    """Chunk test entrypoint."""
    try:
        _run_chunk_tests()
    except Exception as exc:
        print("Chart compile chunk tests: FAIL")
        print(str(exc))
        return 2

    print("Chart compile chunk tests: PASS")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
