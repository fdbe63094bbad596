# test_chart.py
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from audio_effects import AudioEffectKind, create_effect
from chart_models import (
    AudioEffectDefs,
    Chart,
    FxEffectDefs,
    GraphPoint,
    Interval,
    LaserEffectDefs,
    LaserSection,
    LongEvent,
)
from timing_model import BpmChange, TempoMap


def make_chart(
    *,
    bt: Optional[Sequence[Sequence[Interval]]] = None,
    fx: Optional[Sequence[Sequence[Interval]]] = None,
    laser: Optional[Sequence[Sequence[LaserSection]]] = None,
    bpm: float = 120.0,
    bpm_changes: Optional[Sequence[Tuple[int, float]]] = None,
    resolution: int = 192,
    audio_effects: Optional[AudioEffectDefs] = None,
    title: str = "test",
) -> Chart:
    changes = [BpmChange(y=int(y), bpm=float(value)) for y, value in (bpm_changes or [(0, bpm)])]
    return Chart(
        tempo=TempoMap(changes, resolution=resolution),
        bt=list(bt) if bt is not None else [[], [], [], []],
        fx=list(fx) if fx is not None else [[], []],
        laser=list(laser) if laser is not None else [[], []],
        audio_effects=audio_effects if audio_effects is not None else AudioEffectDefs(),
        title=title,
    )


def build_test_chart(*, difficulty: str) -> Chart:
    normalized_difficulty = (difficulty or "easy").strip().lower() or "easy"

    if normalized_difficulty == "hard":
        bpm = 280.0
        measures = 8
    elif normalized_difficulty == "medium":
        bpm = 180.0
        measures = 6
    else:
        normalized_difficulty = "easy"
        bpm = 120.0
        measures = 4

    resolution = 192
    measure_ticks = resolution * 4

    # Deterministic lane pattern that covers all bt lanes.
    lane_pattern = [0, 1, 2, 3, 1, 0, 3, 2]

    bt: List[List[Interval]] = [[], [], [], []]
    fx: List[List[Interval]] = [[], []]
    laser: List[List[LaserSection]] = [[], []]
    fx_long_events: Tuple[List[LongEvent], List[LongEvent]] = ([], [])

    for measure_index in range(measures):
        measure_start = measure_index * measure_ticks
        for beat_index in range(4):
            lane = lane_pattern[(measure_index * 4 + beat_index) % len(lane_pattern)]
            y = measure_start + beat_index * resolution
            # Every fourth note is a half-beat hold.
            length = resolution // 2 if beat_index == 3 else 0
            bt[lane].append(Interval(y=y, l=length))

        fx_side = measure_index % 2
        fx[fx_side].append(Interval(y=measure_start, l=resolution * 2))
        params: Optional[Dict[str, str]] = {"wave_length": "1/16"} if measure_index % 4 == 3 else None
        fx_long_events[fx_side].append(LongEvent(y=measure_start, params=params))

        laser_side = measure_index % 2
        laser[laser_side].append(
            LaserSection(
                y=measure_start,
                points=(
                    GraphPoint(ry=0, v=0.0),
                    GraphPoint(ry=resolution, v=1.0, vf=0.5),
                    GraphPoint(ry=resolution * 3, v=0.0),
                ),
            )
        )

    for lane in bt:
        lane.sort(key=lambda interval: interval.y)

    audio_effects = AudioEffectDefs(
        fx=FxEffectDefs(
            defs={"retrigger": create_effect(AudioEffectKind.RE_TRIGGER, {"wave_length": "1/8"})},
            param_changes={"retrigger": {"update_period": [(measure_ticks, "1/4")]}},
            long_events={"retrigger": fx_long_events},
        ),
        laser=LaserEffectDefs(
            defs={
                "peaking_filter": create_effect(AudioEffectKind.PEAKING_FILTER),
                "high_pass_filter": create_effect(AudioEffectKind.HIGH_PASS_FILTER),
            },
            param_changes={"peaking_filter": {"freq_max": [(measure_ticks * 2, "12000Hz")]}},
            pulse_events={"peaking_filter": [0], "high_pass_filter": [measure_ticks * 3]},
        ),
    )

    return make_chart(
        bt=bt,
        fx=fx,
        laser=laser,
        bpm=bpm,
        resolution=resolution,
        audio_effects=audio_effects,
        title=f"test {normalized_difficulty}",
    )
