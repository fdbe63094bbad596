# -*- coding: utf-8 -*-
########################
# chart_models.py
########################
# Purpose:
# - Immutable chart data read by the timeline compiler.
# - Interval and laser curve primitives, track identifiers, effect schedules, and the Chart handle.
#
# Design notes:
# - Pure data definitions plus curve evaluation. No I/O.
# - Constructors check the chart invariants and raise AssertionError on violation.
#   A malformed chart is an upstream bug; kson_store rejects bad files before they get here.
# - Lane lists are kept sorted by start tick so FX notes can be found by binary search.
# - Sequences are stored as tuples. Dict-valued schedules are never mutated after load.
#
########################
# Interfaces:
# Public enums:
# - class Side(enum.Enum): LEFT | RIGHT
# - class TrackKind(enum.Enum): FX | LASER
#
# Public dataclasses:
# - Track(kind: TrackKind, side: Side)
# - Interval(y: int, l: int)
#   - end -> int
# - GraphPoint(ry: int, v: float, vf: Optional[float] = None)
# - LaserSection(y: int, points: tuple[GraphPoint, ...], wide: int = 1)
#   - end -> int
#   - interval() -> Interval
#   - value_at(y: float) -> Optional[float]
# - LongEvent(y: int, params: Optional[Mapping[str, str]] = None)
# - FxEffectDefs(defs, param_changes, long_events)
# - LaserEffectDefs(defs, param_changes, pulse_events)
# - AudioEffectDefs(fx: FxEffectDefs, laser: LaserEffectDefs)
# - Chart(tempo: TempoMap, bt, fx, laser, audio_effects: AudioEffectDefs, title: str = "")
#   - resolution -> int
#   - bpm_at_tick(y: int) -> float
#   - tick_to_ms(y: float) -> float
#   - ms_to_tick(ms: float) -> float
#   - last_tick() -> int
#
# Inputs/Outputs:
# - Built by kson_store (from files) and test_chart (fixtures).
# - Read by score_ticks and effect_timeline.
#
########################

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
import enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from audio_effects import AudioEffect
from timing_model import TempoMap


BT_LANE_COUNT = 4
FX_LANE_COUNT = 2
LASER_LANE_COUNT = 2


class Side(enum.Enum):
    LEFT = 0
    RIGHT = 1


class TrackKind(enum.Enum):
    FX = "fx"
    LASER = "laser"


@dataclass(frozen=True)
class Track:
    kind: TrackKind
    side: Side


@dataclass(frozen=True)
class Interval:
    y: int
    l: int = 0

    def __post_init__(self) -> None:
        if int(self.y) < 0 or int(self.l) < 0:
            raise AssertionError(f"Interval needs non-negative start and length, got y={self.y} l={self.l}")

    @property
    def end(self) -> int:
        return int(self.y) + int(self.l)


@dataclass(frozen=True)
class GraphPoint:
    ry: int
    v: float
    vf: Optional[float] = None


@dataclass(frozen=True)
class LaserSection:
    y: int
    points: Tuple[GraphPoint, ...]
    wide: int = 1
    _offsets: Tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", tuple(self.points))
        object.__setattr__(self, "_offsets", tuple(int(point.ry) for point in self.points))
        if int(self.y) < 0:
            raise AssertionError(f"Laser section start must be non-negative, got {self.y}")
        if not self.points:
            raise AssertionError(f"Laser section at tick {self.y} has no points")
        if int(self.points[0].ry) != 0:
            raise AssertionError(f"Laser section at tick {self.y} must start with ry == 0")
        for previous, current in zip(self.points, self.points[1:]):
            if int(current.ry) <= int(previous.ry):
                raise AssertionError(f"Laser section at tick {self.y} has unordered points")

    @property
    def end(self) -> int:
        return int(self.y) + int(self.points[-1].ry)

    def interval(self) -> Interval:
        return Interval(y=int(self.y), l=int(self.points[-1].ry))

    def value_at(self, y: float) -> Optional[float]:
        """Evaluate the curve at an absolute tick.

        Between two points the value moves linearly from the earlier point's slam
        target (or its value when it has none) to the later point's value.
        Returns None outside the section.
        """
        ry = float(y) - float(self.y)
        last = self.points[-1]
        if ry < 0.0 or ry > float(last.ry):
            return None
        if ry == float(last.ry):
            return float(last.vf) if last.vf is not None else float(last.v)

        index = bisect_right(self._offsets, ry) - 1
        start = self.points[index]
        end = self.points[index + 1]
        start_value = float(start.vf) if start.vf is not None else float(start.v)
        span = float(end.ry) - float(start.ry)
        progress = (ry - float(start.ry)) / span
        return start_value + (float(end.v) - start_value) * progress


@dataclass(frozen=True)
class LongEvent:
    y: int
    params: Optional[Mapping[str, str]] = None


# name -> parameter key -> [(tick, raw value)]
ParamChangeSchedule = Dict[str, Dict[str, List[Tuple[int, str]]]]


@dataclass(frozen=True)
class FxEffectDefs:
    defs: Dict[str, AudioEffect] = field(default_factory=dict)
    param_changes: ParamChangeSchedule = field(default_factory=dict)
    # name -> (left lane events, right lane events)
    long_events: Dict[str, Tuple[List[LongEvent], List[LongEvent]]] = field(default_factory=dict)


@dataclass(frozen=True)
class LaserEffectDefs:
    defs: Dict[str, AudioEffect] = field(default_factory=dict)
    param_changes: ParamChangeSchedule = field(default_factory=dict)
    # name -> activation ticks
    pulse_events: Dict[str, List[int]] = field(default_factory=dict)


@dataclass(frozen=True)
class AudioEffectDefs:
    fx: FxEffectDefs = field(default_factory=FxEffectDefs)
    laser: LaserEffectDefs = field(default_factory=LaserEffectDefs)


def _freeze_lanes(lanes: Sequence[Sequence], expected_count: int, lane_name: str) -> tuple:
    if len(lanes) != expected_count:
        raise AssertionError(f"Chart needs {expected_count} {lane_name} lanes, got {len(lanes)}")
    frozen = tuple(tuple(lane) for lane in lanes)
    for lane_index, lane in enumerate(frozen):
        for previous, current in zip(lane, lane[1:]):
            if int(current.y) < int(previous.y):
                raise AssertionError(f"{lane_name} lane {lane_index} is not sorted by tick")
    return frozen


@dataclass(frozen=True)
class Chart:
    tempo: TempoMap
    bt: Tuple[Tuple[Interval, ...], ...]
    fx: Tuple[Tuple[Interval, ...], ...]
    laser: Tuple[Tuple[LaserSection, ...], ...]
    audio_effects: AudioEffectDefs = field(default_factory=AudioEffectDefs)
    title: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "bt", _freeze_lanes(self.bt, BT_LANE_COUNT, "bt"))
        object.__setattr__(self, "fx", _freeze_lanes(self.fx, FX_LANE_COUNT, "fx"))
        object.__setattr__(self, "laser", _freeze_lanes(self.laser, LASER_LANE_COUNT, "laser"))

    @property
    def resolution(self) -> int:
        return self.tempo.resolution

    def bpm_at_tick(self, y: int) -> float:
        return self.tempo.bpm_at_tick(y)

    def tick_to_ms(self, y: float) -> float:
        return self.tempo.tick_to_ms(y)

    def ms_to_tick(self, ms: float) -> float:
        return self.tempo.ms_to_tick(ms)

    def last_tick(self) -> int:
        last = 0
        for lane in self.bt + self.fx:
            if lane:
                last = max(last, max(interval.end for interval in lane))
        for lane in self.laser:
            if lane:
                last = max(last, max(section.end for section in lane))
        return last
