# -*- coding: utf-8 -*-
########################
# timing_model.py
########################
# Purpose:
# - Single source of truth for chart timing.
# - Maps chart ticks to BPM and to milliseconds, and milliseconds back to ticks.
#
# Design notes:
# - Pure and deterministic. A TempoMap never changes after construction.
# - Tick resolution is ticks per quarter beat and is chart-wide.
# - BPM changes are step functions: the BPM set at tick y holds until the next change.
# - A change at tick 0 is required. kson_store inserts one when a chart omits it.
#
########################
# Interfaces:
# Public dataclasses:
# - BpmChange(y: int, bpm: float)
#
# Public classes:
# - class TempoMap
#   - __init__(bpm_changes: Sequence[BpmChange], resolution: int)
#   - resolution -> int
#   - bpm_changes -> tuple[BpmChange, ...]
#   - bpm_at_tick(y: int) -> float
#   - tick_to_ms(y: float) -> float
#   - ms_to_tick(ms: float) -> float
#
# Inputs:
# - BPM changes and resolution from the chart loader.
#
# Outputs:
# - BPM lookups used by the tick quantizer (score_ticks.hold_step_at).
# - Millisecond conversion used by chart_engine reports.
#
########################

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from typing import List, Sequence, Tuple


@dataclass(frozen=True)
class BpmChange:
    y: int
    bpm: float


class TempoMap:
    def __init__(self, bpm_changes: Sequence[BpmChange], resolution: int) -> None:
        if int(resolution) <= 0:
            raise AssertionError(f"resolution must be positive, got {resolution!r}")
        ordered = sorted(bpm_changes, key=lambda change: int(change.y))
        if not ordered or int(ordered[0].y) != 0:
            raise AssertionError("tempo map needs a BPM change at tick 0")
        for change in ordered:
            if float(change.bpm) <= 0.0:
                raise AssertionError(f"BPM must be positive, got {change.bpm!r} at tick {change.y}")

        self._resolution = int(resolution)
        self._changes: Tuple[BpmChange, ...] = tuple(ordered)
        self._change_ticks: List[int] = [int(change.y) for change in ordered]

        # Millisecond position of every change, accumulated once.
        self._change_ms: List[float] = []
        elapsed_ms = 0.0
        for index, change in enumerate(ordered):
            if index > 0:
                previous = ordered[index - 1]
                elapsed_ms += self._ms_per_tick(previous.bpm) * (int(change.y) - int(previous.y))
            self._change_ms.append(elapsed_ms)

    @property
    def resolution(self) -> int:
        return self._resolution

    @property
    def bpm_changes(self) -> Tuple[BpmChange, ...]:
        return self._changes

    def _ms_per_tick(self, bpm: float) -> float:
        return 60000.0 / (float(bpm) * float(self._resolution))

    def _index_at_tick(self, y: float) -> int:
        return max(0, bisect_right(self._change_ticks, y) - 1)

    def bpm_at_tick(self, y: int) -> float:
        return float(self._changes[self._index_at_tick(y)].bpm)

    def tick_to_ms(self, y: float) -> float:
        index = self._index_at_tick(y)
        change = self._changes[index]
        return self._change_ms[index] + self._ms_per_tick(change.bpm) * (float(y) - float(change.y))

    def ms_to_tick(self, ms: float) -> float:
        index = max(0, bisect_right(self._change_ms, float(ms)) - 1)
        change = self._changes[index]
        return float(change.y) + (float(ms) - self._change_ms[index]) / self._ms_per_tick(change.bpm)


def _run_unit_tests() -> None:
    tempo = TempoMap([BpmChange(y=0, bpm=120.0), BpmChange(y=960, bpm=240.0)], resolution=240)
    assert tempo.bpm_at_tick(0) == 120.0
    assert tempo.bpm_at_tick(959) == 120.0
    assert tempo.bpm_at_tick(960) == 240.0

    # 120 BPM at 240 ticks per beat: one beat is 500 ms.
    assert abs(tempo.tick_to_ms(240) - 500.0) < 1e-9
    assert abs(tempo.tick_to_ms(960) - 2000.0) < 1e-9
    assert abs(tempo.tick_to_ms(1200) - 2250.0) < 1e-9
    assert abs(tempo.ms_to_tick(2250.0) - 1200.0) < 1e-9
    assert abs(tempo.ms_to_tick(tempo.tick_to_ms(517)) - 517.0) < 1e-6


if __name__ == "__main__":
    _run_unit_tests()
    print("timing_model.py: ok")
