from __future__ import annotations

import pytest

from chart_models import GraphPoint, Interval, LaserSection
from score_ticks import ChipTick, FX_LANE_OFFSET, HoldTick, PlacedScoreTick
from score_timeline import ScoreTickSummary, ScoreTicks, compile_score_ticks
import test_chart
from test_chart import make_chart


def _small_chart():
    return make_chart(
        bt=[[Interval(y=0), Interval(y=96)], [Interval(y=0, l=192)], [], []],
        fx=[[Interval(y=96)], []],
        laser=[[LaserSection(y=192, points=(GraphPoint(ry=0, v=0.0), GraphPoint(ry=192, v=1.0, vf=0.0)))], []],
        bpm=120.0,
        resolution=192,
    )


def test_compiled_timeline_is_sorted_and_complete():
    timeline = compile_score_ticks(_small_chart())
    ys = [placed.y for placed in timeline]
    assert ys == sorted(ys)

    summary = timeline.summary()
    # bt chips 0 and 96, fx chip 96, hold ticks 48/96/144, laser ticks 240/288/336, slam 384.
    assert summary == ScoreTickSummary(chip_count=3, hold_count=3, laser_count=3, slam_count=1, total=10)
    assert summary.total == len(timeline)
    assert summary.total == summary.chip_count + summary.hold_count + summary.laser_count + summary.slam_count


def test_equal_ticks_keep_lane_order():
    timeline = compile_score_ticks(_small_chart())
    at_96 = [placed.tick for placed in timeline if placed.y == 96]
    assert at_96 == [ChipTick(lane=0), HoldTick(lane=1), ChipTick(lane=FX_LANE_OFFSET)]


def test_combo_is_monotonic_and_reaches_total():
    timeline = compile_score_ticks(test_chart.build_test_chart(difficulty="medium"))
    previous = 0
    for y in range(0, timeline.last_y + 200, 7):
        combo = timeline.combo_at(y)
        assert combo >= previous
        previous = combo
    assert timeline.combo_at(timeline.last_y) == len(timeline)


def test_combo_counts_ticks_at_and_before_position():
    timeline = compile_score_ticks(_small_chart())
    assert timeline.combo_at(0) == 1
    assert timeline.combo_at(47) == 1
    assert timeline.combo_at(48) == 2
    assert timeline.combo_at(96) == 5
    assert timeline.combo_at(97) == 5


def test_empty_timeline():
    timeline = compile_score_ticks(make_chart())
    assert len(timeline) == 0
    assert timeline.last_y is None
    assert timeline.combo_at(1000) == 0
    assert timeline.summary() == ScoreTickSummary()


def test_window_and_lane_queries():
    timeline = compile_score_ticks(_small_chart())
    assert [placed.y for placed in timeline.ticks_between(96, 240)] == [96, 96, 96, 144]
    assert [placed.y for placed in timeline.lane_ticks(1, kinds={"hold"})] == [48, 96, 144]
    assert [placed.tick.kind for placed in timeline.lane_ticks(0) if placed.y >= 240] == ["laser", "laser", "laser", "slam"]


def test_compiling_twice_gives_equal_timelines():
    first = compile_score_ticks(test_chart.build_test_chart(difficulty="hard"))
    second = compile_score_ticks(test_chart.build_test_chart(difficulty="hard"))
    assert first == second


def test_unsorted_ticks_are_rejected():
    with pytest.raises(AssertionError):
        ScoreTicks([PlacedScoreTick(y=10, tick=ChipTick(lane=0)), PlacedScoreTick(y=5, tick=ChipTick(lane=0))])
