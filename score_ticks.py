# -*- coding: utf-8 -*-
########################
# score_ticks.py
########################
# Purpose:
# - Generate the judgeable score ticks of a chart, lane by lane.
# - Chip notes give one tick, holds and lasers give quantized periodic ticks, slams give one tick each.
#
# Design notes:
# - Pure functions over an immutable Chart. The chart is passed into every call.
# - Quantization step is tempo dependent: resolution / 2 above FAST_BPM_THRESHOLD, else resolution / 4.
#   The step is looked up again at every emitted position, so it can change inside one hold.
# - Hold ticks start at the first step boundary strictly after the hold start and stop one step
#   before the hold end. The hold head is judged as its own note elsewhere; a tail shorter than
#   one step is never judged.
# - Laser ticks skip a candidate that lands on the previous emitted tick (segment joins).
# - Button lanes: bt lanes are 0..3 and fx lanes are 4..5. Laser lanes are 0..1 (left, right).
#
########################
# Interfaces:
# Public dataclasses (frozen):
# - ScoreTick(lane: int)  base for the four variants below
#   - kind -> str         "chip" | "hold" | "laser" | "slam"
#   - category -> str     "note" | "hold" | "laser"
#   - is_sustained -> bool
# - ChipTick(lane: int)
# - HoldTick(lane: int)
# - LaserTick(lane: int, pos: float)
# - SlamTick(lane: int, start: float, end: float)
# - PlacedScoreTick(y: int, tick: ScoreTick)
#
# Public functions:
# - hold_step_at(y: int, chart: Chart) -> int
# - ticks_from_interval(interval: Interval, lane: int, chart: Chart) -> list[PlacedScoreTick]
# - ticks_from_laser_section(section: LaserSection, lane: int, chart: Chart) -> list[PlacedScoreTick]
# - lane_tick_streams(chart: Chart) -> list[list[PlacedScoreTick]]
#
# Inputs:
# - chart_models.Chart
#
# Outputs:
# - Per-lane tick streams merged by score_timeline.compile_score_ticks.
#
########################

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, List, Optional

from chart_models import Chart, GraphPoint, Interval, LaserSection


FAST_BPM_THRESHOLD = 255.0
FX_LANE_OFFSET = 4


@dataclass(frozen=True)
class ScoreTick:
    lane: int

    kind: ClassVar[str] = ""
    category: ClassVar[str] = ""
    is_sustained: ClassVar[bool] = False


@dataclass(frozen=True)
class ChipTick(ScoreTick):
    kind: ClassVar[str] = "chip"
    category: ClassVar[str] = "note"


@dataclass(frozen=True)
class HoldTick(ScoreTick):
    kind: ClassVar[str] = "hold"
    category: ClassVar[str] = "hold"
    is_sustained: ClassVar[bool] = True


@dataclass(frozen=True)
class LaserTick(ScoreTick):
    pos: float = 0.0

    kind: ClassVar[str] = "laser"
    category: ClassVar[str] = "laser"
    is_sustained: ClassVar[bool] = True


@dataclass(frozen=True)
class SlamTick(ScoreTick):
    start: float = 0.0
    end: float = 0.0

    kind: ClassVar[str] = "slam"
    category: ClassVar[str] = "laser"


@dataclass(frozen=True)
class PlacedScoreTick:
    y: int
    tick: ScoreTick


def hold_step_at(y: int, chart: Chart) -> int:
    if chart.bpm_at_tick(y) > FAST_BPM_THRESHOLD:
        step = chart.resolution // 2
    else:
        step = chart.resolution // 4
    if step <= 0:
        raise AssertionError(f"Chart resolution {chart.resolution} is too small to quantize")
    return step


def ticks_from_interval(interval: Interval, lane: int, chart: Chart) -> List[PlacedScoreTick]:
    if int(interval.l) == 0:
        return [PlacedScoreTick(y=int(interval.y), tick=ChipTick(lane=lane))]

    ticks: List[PlacedScoreTick] = []
    y = int(interval.y)
    step = hold_step_at(y, chart)
    y += step
    y -= y % step
    while y <= int(interval.y) + int(interval.l) - step:
        ticks.append(PlacedScoreTick(y=y, tick=HoldTick(lane=lane)))
        step = hold_step_at(y, chart)
        y += step
    return ticks


def _slam_tick(point: Optional[GraphPoint], lane: int, section_y: int) -> Optional[PlacedScoreTick]:
    if point is None or point.vf is None:
        return None
    return PlacedScoreTick(
        y=int(section_y) + int(point.ry),
        tick=SlamTick(lane=lane, start=float(point.v), end=float(point.vf)),
    )


def ticks_from_laser_section(section: LaserSection, lane: int, chart: Chart) -> List[PlacedScoreTick]:
    ticks: List[PlacedScoreTick] = []
    section_y = int(section.y)

    first = True
    for start_point, end_point in zip(section.points, section.points[1:]):
        slam = _slam_tick(start_point, lane, section_y)
        if slam is not None:
            ticks.append(slam)

        y = section_y + int(start_point.ry)
        step = hold_step_at(y, chart)
        # The section start and a slam are judged on their own; quantized ticks begin one step later.
        if start_point.vf is not None or first:
            y += step
        y -= y % step
        while y <= section_y + int(end_point.ry) - step:
            if ticks and ticks[-1].y == y:
                step = hold_step_at(y, chart)
                y += step
                continue

            pos = section.value_at(y)
            ticks.append(PlacedScoreTick(y=y, tick=LaserTick(lane=lane, pos=pos if pos is not None else 0.0)))
            step = hold_step_at(y, chart)
            y += step
        first = False

    # The last point has no outgoing segment, so its slam is only seen here.
    trailing = _slam_tick(section.points[-1], lane, section_y)
    if trailing is not None:
        ticks.append(trailing)

    return ticks


def lane_tick_streams(chart: Chart) -> List[List[PlacedScoreTick]]:
    """Tick streams in lane order: bt 0..3, fx 0..1, laser left and right."""
    streams: List[List[PlacedScoreTick]] = []

    for lane_index, lane in enumerate(chart.bt):
        stream: List[PlacedScoreTick] = []
        for interval in lane:
            stream.extend(ticks_from_interval(interval, lane_index, chart))
        streams.append(stream)

    for lane_index, lane in enumerate(chart.fx):
        stream = []
        for interval in lane:
            stream.extend(ticks_from_interval(interval, FX_LANE_OFFSET + lane_index, chart))
        streams.append(stream)

    for lane_index, lane in enumerate(chart.laser):
        stream = []
        for section in lane:
            stream.extend(ticks_from_laser_section(section, lane_index, chart))
        streams.append(stream)

    return streams
