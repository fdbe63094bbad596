# -*- coding: utf-8 -*-
########################
# score_timeline.py
########################
# Purpose:
# - Merge per-lane score tick streams into one ascending Score Tick Timeline.
# - Answer summary and combo queries against that timeline.
#
# Design notes:
# - Pure logic. The timeline is an immutable tuple and may be shared across threads.
# - Merge is a stable sort by tick. Ticks on the same tick keep stream order:
#   bt lanes 0..3, fx lanes, laser left, laser right, and generation order inside a lane.
#   The chart format defines no order for such ties, so callers must not depend on it.
# - combo_at counts every tick at the queried position (bisect_right).
# - The summary is always derived from the timeline, never stored beside it.
#
########################
# Interfaces:
# Public dataclasses:
# - ScoreTickSummary(chip_count: int, hold_count: int, laser_count: int, slam_count: int, total: int)
#
# Public classes:
# - class ScoreTicks
#   - merge(streams: Iterable[Iterable[PlacedScoreTick]]) -> ScoreTicks
#   - ticks -> tuple[PlacedScoreTick, ...]
#   - last_y -> Optional[int]
#   - summary() -> ScoreTickSummary
#   - combo_at(y: int) -> int
#   - ticks_between(start_y: int, end_y: int) -> list[PlacedScoreTick]
#   - lane_ticks(lane: int, *, kinds: Optional[Collection[str]] = None) -> list[PlacedScoreTick]
#
# Public functions:
# - compile_score_ticks(chart: Chart) -> ScoreTicks
#
# Inputs:
# - chart_models.Chart via score_ticks.lane_tick_streams.
#
# Outputs:
# - ScoreTicks for the scoring and combo engine.
#
########################

from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass
import logging
from typing import Collection, Iterable, Iterator, List, Optional, Sequence, Tuple

from chart_models import Chart
import score_ticks
from score_ticks import PlacedScoreTick


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreTickSummary:
    chip_count: int = 0
    hold_count: int = 0
    laser_count: int = 0
    slam_count: int = 0
    total: int = 0


class ScoreTicks:
    def __init__(self, ticks: Sequence[PlacedScoreTick]) -> None:
        self._ticks: Tuple[PlacedScoreTick, ...] = tuple(ticks)
        self._tick_ys: List[int] = [int(placed.y) for placed in self._ticks]
        for previous, current in zip(self._tick_ys, self._tick_ys[1:]):
            if current < previous:
                raise AssertionError("ScoreTicks must be sorted by tick; use ScoreTicks.merge")

    @classmethod
    def merge(cls, streams: Iterable[Iterable[PlacedScoreTick]]) -> ScoreTicks:
        concatenated: List[PlacedScoreTick] = []
        for stream in streams:
            concatenated.extend(stream)
        return cls(sorted(concatenated, key=lambda placed: int(placed.y)))

    @property
    def ticks(self) -> Tuple[PlacedScoreTick, ...]:
        return self._ticks

    @property
    def last_y(self) -> Optional[int]:
        if not self._ticks:
            return None
        return int(self._ticks[-1].y)

    def __len__(self) -> int:
        return len(self._ticks)

    def __iter__(self) -> Iterator[PlacedScoreTick]:
        return iter(self._ticks)

    def __getitem__(self, index: int) -> PlacedScoreTick:
        return self._ticks[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScoreTicks):
            return NotImplemented
        return self._ticks == other._ticks

    def summary(self) -> ScoreTickSummary:
        chip_count = 0
        hold_count = 0
        laser_count = 0
        slam_count = 0
        for placed in self._ticks:
            kind = placed.tick.kind
            if kind == "chip":
                chip_count += 1
            elif kind == "hold":
                hold_count += 1
            elif kind == "laser":
                laser_count += 1
            elif kind == "slam":
                slam_count += 1
        return ScoreTickSummary(
            chip_count=chip_count,
            hold_count=hold_count,
            laser_count=laser_count,
            slam_count=slam_count,
            total=len(self._ticks),
        )

    def combo_at(self, y: int) -> int:
        """Number of ticks judged by tick position y, inclusive of ticks exactly at y."""
        # Exact hit: index of the last tick at y, plus one. Miss: insertion index.
        # bisect_right gives both.
        return bisect_right(self._tick_ys, int(y))

    def ticks_between(self, start_y: int, end_y: int) -> List[PlacedScoreTick]:
        """Ticks with start_y <= y < end_y."""
        start_index = bisect_left(self._tick_ys, int(start_y))
        end_index = bisect_left(self._tick_ys, int(end_y))
        return list(self._ticks[start_index:end_index])

    def lane_ticks(self, lane: int, *, kinds: Optional[Collection[str]] = None) -> List[PlacedScoreTick]:
        lane_key = int(lane)
        selected: List[PlacedScoreTick] = []
        for placed in self._ticks:
            if int(placed.tick.lane) != lane_key:
                continue
            if kinds is not None and placed.tick.kind not in kinds:
                continue
            selected.append(placed)
        return selected


def compile_score_ticks(chart: Chart) -> ScoreTicks:
    timeline = ScoreTicks.merge(score_ticks.lane_tick_streams(chart))
    summary = timeline.summary()
    logger.info(
        "Compiled %d score ticks (chip=%d hold=%d laser=%d slam=%d)",
        summary.total,
        summary.chip_count,
        summary.hold_count,
        summary.laser_count,
        summary.slam_count,
    )
    return timeline


def _run_unit_tests() -> None:
    from score_ticks import ChipTick, HoldTick, SlamTick

    streams = [
        [PlacedScoreTick(y=0, tick=ChipTick(lane=0)), PlacedScoreTick(y=96, tick=HoldTick(lane=0))],
        [PlacedScoreTick(y=48, tick=ChipTick(lane=1)), PlacedScoreTick(y=96, tick=ChipTick(lane=1))],
        [PlacedScoreTick(y=96, tick=SlamTick(lane=0, start=0.0, end=1.0))],
    ]
    timeline = ScoreTicks.merge(streams)

    assert [placed.y for placed in timeline] == [0, 48, 96, 96, 96]
    # Stable merge: equal ticks keep stream order.
    assert [placed.tick.kind for placed in timeline.ticks[2:]] == ["hold", "chip", "slam"]

    summary = timeline.summary()
    assert summary == ScoreTickSummary(chip_count=3, hold_count=1, laser_count=0, slam_count=1, total=5)

    assert timeline.combo_at(0) == 1
    assert timeline.combo_at(1) == 1
    assert timeline.combo_at(48) == 2
    assert timeline.combo_at(95) == 2
    assert timeline.combo_at(96) == 5
    assert timeline.combo_at(10000) == 5

    assert [placed.y for placed in timeline.ticks_between(48, 96)] == [48]
    assert len(timeline.lane_ticks(1, kinds={"chip"})) == 2


if __name__ == "__main__":
    _run_unit_tests()
    print("score_timeline.py: ok")
