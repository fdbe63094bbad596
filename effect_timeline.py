# -*- coding: utf-8 -*-
########################
# effect_timeline.py
########################
# Purpose:
# - Resolve audio effect snapshots for FX hold notes and laser sections.
# - Produce the Effect Interval Timeline consumed by the effect mixer.
#
# Design notes:
# - Pure logic over an immutable Chart.
# - Resolution is layered: root definition, then scheduled parameter changes with tick <= at,
#   then (FX only) the long event's own parameters.
# - Resolution is causal: a change scheduled after the interval start is never applied.
# - The snapshot is fixed at the interval start. Parameter changes inside a running interval
#   are ignored.
# - Missing lookups are not errors: an FX long event without a matching note, or a laser section
#   without an earlier pulse event, simply produces no interval.
#
########################
# Interfaces:
# Public dataclasses:
# - ParamChange(y: int, key: str, raw: str)
# - EffectInterval(interval: Interval, effect: AudioEffect, track: Optional[Track], dom: bool)
#   - to_dict() -> dict
#
# Public functions:
# - flatten_param_changes(changes_by_key: Optional[Mapping[str, Sequence[tuple[int, str]]]]) -> list[ParamChange]
# - resolve_effect(root: AudioEffect, changes: Sequence[ParamChange], at: int) -> AudioEffect
# - find_note_at(lane: Sequence[Interval], y: int, starts: Optional[Sequence[int]] = None) -> Optional[Interval]
# - latest_pulse_event(pulse_events: Mapping[str, Sequence[int]], y: int) -> Optional[str]
# - fx_effect_intervals(chart: Chart) -> list[EffectInterval]
# - laser_effect_intervals(chart: Chart) -> list[EffectInterval]
# - build_effect_timeline(chart: Chart) -> tuple[EffectInterval, ...]
#
# Inputs:
# - chart_models.Chart and its AudioEffectDefs.
#
# Outputs:
# - Sorted EffectInterval tuple, each carrying a resolved AudioEffect.
#
########################

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from audio_effects import AudioEffect
from chart_models import Chart, Interval, Side, Track, TrackKind


logger = logging.getLogger(__name__)

_SIDES = (Side.LEFT, Side.RIGHT)


@dataclass(frozen=True)
class ParamChange:
    y: int
    key: str
    raw: str


@dataclass(frozen=True)
class EffectInterval:
    interval: Interval
    effect: AudioEffect
    track: Optional[Track]
    # Authoritative assignment for the span. Always True until overlapping effects are resolved.
    dom: bool = True

    def to_dict(self) -> Dict[str, Any]:
        track_payload = None
        if self.track is not None:
            track_payload = {"kind": self.track.kind.value, "side": self.track.side.name.lower()}
        return {
            "y": int(self.interval.y),
            "l": int(self.interval.l),
            "track": track_payload,
            "dom": bool(self.dom),
            "effect": self.effect.to_dict(),
        }


def flatten_param_changes(
    changes_by_key: Optional[Mapping[str, Sequence[Tuple[int, str]]]],
) -> List[ParamChange]:
    """Flatten a key -> [(tick, raw)] schedule into one list ordered by tick.

    The sort is stable, so changes on the same tick keep their schedule order.
    """
    flattened: List[ParamChange] = []
    for key, changes in (changes_by_key or {}).items():
        for tick, raw in changes:
            flattened.append(ParamChange(y=int(tick), key=str(key), raw=str(raw)))
    flattened.sort(key=lambda change: change.y)
    return flattened


def resolve_effect(root: AudioEffect, changes: Sequence[ParamChange], at: int) -> AudioEffect:
    effect = root
    for change in sorted(changes, key=lambda item: item.y):
        if change.y > int(at):
            break
        effect = effect.derive(change.key, change.raw)
    return effect


def find_note_at(lane: Sequence[Interval], y: int, starts: Optional[Sequence[int]] = None) -> Optional[Interval]:
    """Binary search a lane (sorted by start tick) for a note starting exactly at y.

    Pass the lane's start ticks as starts when searching the same lane repeatedly.
    """
    if starts is None:
        starts = [int(interval.y) for interval in lane]
    index = bisect_left(starts, int(y))
    if index < len(starts) and starts[index] == int(y):
        return lane[index]
    return None


def latest_pulse_event(pulse_events: Mapping[str, Sequence[int]], y: int) -> Optional[str]:
    """Name of the effect whose most recent activation at or before y is the latest.

    Ties on the same tick go to the effect listed last.
    """
    best_name: Optional[str] = None
    best_tick = -1
    for name, ticks in pulse_events.items():
        for tick in ticks:
            if int(tick) <= int(y) and int(tick) >= best_tick:
                best_name = name
                best_tick = int(tick)
    return best_name


def fx_effect_intervals(chart: Chart) -> List[EffectInterval]:
    fx_defs = chart.audio_effects.fx
    intervals: List[EffectInterval] = []
    lane_starts = [[int(interval.y) for interval in lane] for lane in chart.fx]

    for name, root_effect in fx_defs.defs.items():
        long_events = fx_defs.long_events.get(name)
        if long_events is None:
            continue
        changes = flatten_param_changes(fx_defs.param_changes.get(name))

        for side_index, side in enumerate(_SIDES):
            lane = chart.fx[side_index]
            for event in long_events[side_index]:
                note = find_note_at(lane, event.y, lane_starts[side_index])
                if note is None:
                    logger.debug("FX long event %r at tick %d has no note on the %s lane", name, event.y, side.name.lower())
                    continue

                effect = resolve_effect(root_effect, changes, event.y)
                for key, raw in (event.params or {}).items():
                    effect = effect.derive(str(key), str(raw))

                intervals.append(
                    EffectInterval(
                        interval=note,
                        effect=effect,
                        track=Track(kind=TrackKind.FX, side=side),
                        dom=True,
                    )
                )

    return intervals


def laser_effect_intervals(chart: Chart) -> List[EffectInterval]:
    laser_defs = chart.audio_effects.laser
    intervals: List[EffectInterval] = []

    for side_index, side in enumerate(_SIDES):
        for section in chart.laser[side_index]:
            interval = section.interval()
            name = latest_pulse_event(laser_defs.pulse_events, interval.y)
            if name is None:
                continue
            root_effect = laser_defs.defs.get(name)
            if root_effect is None:
                logger.debug("Laser pulse event %r at or before tick %d has no definition", name, interval.y)
                continue

            changes = flatten_param_changes(laser_defs.param_changes.get(name))
            effect = resolve_effect(root_effect, changes, interval.y)
            intervals.append(
                EffectInterval(
                    interval=interval,
                    effect=effect,
                    track=Track(kind=TrackKind.LASER, side=side),
                    dom=True,
                )
            )

    return intervals


def build_effect_timeline(chart: Chart) -> Tuple[EffectInterval, ...]:
    combined = fx_effect_intervals(chart) + laser_effect_intervals(chart)
    combined.sort(key=lambda effect_interval: int(effect_interval.interval.y))
    logger.info("Compiled %d effect intervals", len(combined))
    return tuple(combined)
