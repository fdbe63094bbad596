# -*- coding: utf-8 -*-
########################
# kson_store.py
########################
# Purpose:
# - Load KSON-style JSON charts and convert them into chart_models.Chart.
# - Reject malformed charts at load time so the compiler only sees valid data.
#
# Design notes:
# - Two stages: pydantic validates the document shape, then _build_chart checks chart rules.
# - Shape problems (not JSON, wrong types, missing sections) raise KsonParseError.
# - Rule problems (unsorted lanes, bad laser points, unknown effect types, bad parameter text)
#   raise KsonValidationError.
# - Effect parameter text is checked here by deriving it onto its definition once,
#   so later derive calls during compilation cannot fail.
#
# Accepted document subset:
#   {
#     "meta": {"title": "..."},
#     "beat": {"bpm": [[y, bpm], ...], "resolution": 240},
#     "note": {
#       "bt": [[y | [y, l], ...] x4],
#       "fx": [[y | [y, l], ...] x2],
#       "laser": [[[y, [[ry, v] | [ry, v, vf] | [ry, [v, vf]], ...], wide?], ...] x2]
#     },
#     "audio": {"audio_effect": {
#       "fx": {"def": {name: {"type": t, "v": {key: raw}}} | [[name, {...}], ...],
#              "param_change": {name: {key: [[y, raw], ...]}},
#              "long_event": {name: [[y | [y] | [y, {key: raw} | null], ...] x2]}},
#       "laser": {"def": ..., "param_change": ..., "pulse_event": {name: [y, ...]}}
#     }}
#   }
#
########################
# Interfaces:
# Public exceptions:
# - class KsonError(Exception)
# - class KsonParseError(KsonError)
# - class KsonValidationError(KsonError)
#
# Public dataclasses:
# - LoadedChart(chart: chart_models.Chart, source_path: Optional[pathlib.Path], title: str)
#
# Public functions:
# - parse_chart(document: Mapping[str, Any], *, source_path: Optional[pathlib.Path] = None) -> LoadedChart
# - load_chart(chart_path: pathlib.Path) -> LoadedChart
#
# Inputs:
# - Chart file path or an already decoded JSON object.
#
# Outputs:
# - LoadedChart for chart_engine.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path
from typing import Annotated, Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, BeforeValidator, Field, ValidationError, field_validator

from audio_effects import AudioEffect, create_effect, effect_kind_from_name
from chart_models import (
    AudioEffectDefs,
    BT_LANE_COUNT,
    Chart,
    FX_LANE_COUNT,
    FxEffectDefs,
    GraphPoint,
    Interval,
    LASER_LANE_COUNT,
    LaserEffectDefs,
    LaserSection,
    LongEvent,
)
from timing_model import BpmChange, TempoMap


logger = logging.getLogger(__name__)


class KsonError(Exception):
    """Base error for chart loading."""


class KsonParseError(KsonError):
    """Raised when the file cannot be read or does not match the document shape."""


class KsonValidationError(KsonError):
    """Raised when the document parses but violates chart rules."""


def _to_text(value: Any) -> Any:
    # Parameter values may be written as JSON numbers or booleans.
    if isinstance(value, bool):
        return "on" if value else "off"
    if isinstance(value, (int, float)):
        return str(value)
    return value


ParamText = Annotated[str, BeforeValidator(_to_text)]
NoteEntry = Union[int, Tuple[int, int]]
PointEntry = Union[Tuple[int, float], Tuple[int, float, Optional[float]], Tuple[int, Tuple[float, float]]]
SectionEntry = Union[Tuple[int, List[PointEntry]], Tuple[int, List[PointEntry], int]]
LongEventEntry = Union[int, Tuple[int], Tuple[int, Optional[Dict[str, ParamText]]]]


class KsonMeta(BaseModel):
    title: str = ""


class KsonBeat(BaseModel):
    bpm: List[Tuple[int, float]] = Field(default_factory=lambda: [(0, 120.0)])
    resolution: int = Field(default=240, ge=4, description="Ticks per quarter beat.")


class KsonNote(BaseModel):
    bt: List[List[NoteEntry]] = Field(default_factory=lambda: [[] for _ in range(BT_LANE_COUNT)])
    fx: List[List[NoteEntry]] = Field(default_factory=lambda: [[] for _ in range(FX_LANE_COUNT)])
    laser: List[List[SectionEntry]] = Field(default_factory=lambda: [[] for _ in range(LASER_LANE_COUNT)])


class KsonEffectDef(BaseModel):
    type: str
    v: Dict[str, ParamText] = Field(default_factory=dict)


def _def_pairs_to_dict(value: Any) -> Any:
    if isinstance(value, list):
        converted: Dict[str, Any] = {}
        for entry in value:
            if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                raise ValueError("effect def list entries must be [name, definition]")
            converted[str(entry[0])] = entry[1]
        return converted
    return value


class KsonFxEffects(BaseModel):
    defs: Dict[str, KsonEffectDef] = Field(default_factory=dict, alias="def")
    param_change: Dict[str, Dict[str, List[Tuple[int, ParamText]]]] = Field(default_factory=dict)
    long_event: Dict[str, List[List[LongEventEntry]]] = Field(default_factory=dict)

    @field_validator("defs", mode="before")
    @classmethod
    def normalize_defs(cls, value: Any) -> Any:
        return _def_pairs_to_dict(value)


class KsonLaserEffects(BaseModel):
    defs: Dict[str, KsonEffectDef] = Field(default_factory=dict, alias="def")
    param_change: Dict[str, Dict[str, List[Tuple[int, ParamText]]]] = Field(default_factory=dict)
    pulse_event: Dict[str, List[int]] = Field(default_factory=dict)

    @field_validator("defs", mode="before")
    @classmethod
    def normalize_defs(cls, value: Any) -> Any:
        return _def_pairs_to_dict(value)


class KsonAudioEffect(BaseModel):
    fx: KsonFxEffects = Field(default_factory=KsonFxEffects)
    laser: KsonLaserEffects = Field(default_factory=KsonLaserEffects)


class KsonAudio(BaseModel):
    audio_effect: Optional[KsonAudioEffect] = None


class KsonDocument(BaseModel):
    meta: KsonMeta = Field(default_factory=KsonMeta)
    beat: KsonBeat = Field(default_factory=KsonBeat)
    note: KsonNote = Field(default_factory=KsonNote)
    audio: KsonAudio = Field(default_factory=KsonAudio)


@dataclass(frozen=True)
class LoadedChart:
    chart: Chart
    source_path: Optional[Path]
    title: str


def _build_tempo(beat: KsonBeat) -> TempoMap:
    changes: List[BpmChange] = []
    for tick, bpm in beat.bpm:
        if tick < 0:
            raise KsonValidationError(f"BPM change at negative tick: {tick}")
        if bpm <= 0.0:
            raise KsonValidationError(f"Invalid BPM value (must be > 0): {bpm!r} at tick {tick}")
        changes.append(BpmChange(y=int(tick), bpm=float(bpm)))

    if not changes:
        changes.append(BpmChange(y=0, bpm=120.0))
    changes.sort(key=lambda change: change.y)
    if changes[0].y != 0:
        # Tempo before the first change is the first change's tempo.
        changes.insert(0, BpmChange(y=0, bpm=changes[0].bpm))

    return TempoMap(changes, resolution=beat.resolution)


def _check_lane_count(lanes: Sequence[Any], expected: int, lane_name: str) -> None:
    if len(lanes) != expected:
        raise KsonValidationError(f"Expected {expected} {lane_name} lanes, got {len(lanes)}")


def _build_interval_lane(entries: Sequence[NoteEntry], lane_name: str, lane_index: int) -> List[Interval]:
    intervals: List[Interval] = []
    for entry in entries:
        if isinstance(entry, int):
            y, length = entry, 0
        else:
            y, length = entry
        if y < 0 or length < 0:
            raise KsonValidationError(f"{lane_name} lane {lane_index}: negative tick or length at {entry!r}")
        intervals.append(Interval(y=int(y), l=int(length)))

    for previous, current in zip(intervals, intervals[1:]):
        if current.y < previous.y:
            raise KsonValidationError(f"{lane_name} lane {lane_index} is not sorted by tick at {current.y}")
    return intervals


def _build_point(entry: PointEntry, lane_index: int, section_y: int) -> GraphPoint:
    if len(entry) == 2 and isinstance(entry[1], tuple):
        ry, (v, vf) = entry  # type: ignore[misc]
    elif len(entry) == 3:
        ry, v, vf = entry  # type: ignore[misc]
    else:
        ry, v = entry  # type: ignore[misc]
        vf = None

    for value in (v, vf):
        if value is not None and not 0.0 <= float(value) <= 1.0:
            raise KsonValidationError(
                f"laser lane {lane_index}: section at {section_y} has value {value!r} outside 0..1"
            )
    return GraphPoint(ry=int(ry), v=float(v), vf=float(vf) if vf is not None else None)


def _build_laser_lane(entries: Sequence[SectionEntry], lane_index: int) -> List[LaserSection]:
    sections: List[LaserSection] = []
    for entry in entries:
        section_y = int(entry[0])
        raw_points = entry[1]
        wide = int(entry[2]) if len(entry) == 3 else 1

        if section_y < 0:
            raise KsonValidationError(f"laser lane {lane_index}: section at negative tick {section_y}")
        if not raw_points:
            raise KsonValidationError(f"laser lane {lane_index}: section at {section_y} has no points")

        points = [_build_point(raw_point, lane_index, section_y) for raw_point in raw_points]
        if points[0].ry != 0:
            raise KsonValidationError(f"laser lane {lane_index}: section at {section_y} must start at ry 0")
        for previous, current in zip(points, points[1:]):
            if current.ry <= previous.ry:
                raise KsonValidationError(
                    f"laser lane {lane_index}: section at {section_y} has unordered points at ry {current.ry}"
                )
        sections.append(LaserSection(y=section_y, points=tuple(points), wide=wide))

    for previous, current in zip(sections, sections[1:]):
        if current.y < previous.y:
            raise KsonValidationError(f"laser lane {lane_index} is not sorted by tick at {current.y}")
    return sections


def _build_effect_defs(raw_defs: Mapping[str, KsonEffectDef], group: str) -> Dict[str, AudioEffect]:
    defs: Dict[str, AudioEffect] = {}
    for name, raw_def in raw_defs.items():
        try:
            kind = effect_kind_from_name(raw_def.type)
            defs[name] = create_effect(kind, raw_def.v)
        except ValueError as exc:
            raise KsonValidationError(f"{group} effect {name!r}: {exc}") from exc
    return defs


def _check_params(effect: AudioEffect, params: Mapping[str, str], context: str) -> None:
    for key, raw in params.items():
        try:
            effect.derive(key, raw)
        except ValueError as exc:
            raise KsonValidationError(f"{context}: parameter {key!r}: {exc}") from exc


def _build_param_changes(
    raw_changes: Mapping[str, Mapping[str, Sequence[Tuple[int, str]]]],
    defs: Mapping[str, AudioEffect],
    group: str,
) -> Dict[str, Dict[str, List[Tuple[int, str]]]]:
    schedule: Dict[str, Dict[str, List[Tuple[int, str]]]] = {}
    for name, changes_by_key in raw_changes.items():
        root_effect = defs.get(name)
        if root_effect is None:
            logger.warning("%s param_change for undefined effect %r ignored", group, name)
            continue
        schedule[name] = {}
        for key, changes in changes_by_key.items():
            ordered = sorted(((int(tick), str(raw)) for tick, raw in changes), key=lambda change: change[0])
            for tick, raw in ordered:
                _check_params(root_effect, {key: raw}, f"{group} effect {name!r} at tick {tick}")
            schedule[name][key] = ordered
    return schedule


def _build_long_events(
    raw_events: Mapping[str, Sequence[Sequence[LongEventEntry]]],
    defs: Mapping[str, AudioEffect],
) -> Dict[str, Tuple[List[LongEvent], List[LongEvent]]]:
    long_events: Dict[str, Tuple[List[LongEvent], List[LongEvent]]] = {}
    for name, lanes in raw_events.items():
        root_effect = defs.get(name)
        if root_effect is None:
            logger.warning("fx long_event for undefined effect %r ignored", name)
            continue
        _check_lane_count(lanes, FX_LANE_COUNT, f"fx long_event {name!r}")

        per_side: List[List[LongEvent]] = []
        for entries in lanes:
            events: List[LongEvent] = []
            for entry in entries:
                if isinstance(entry, int):
                    events.append(LongEvent(y=int(entry)))
                    continue
                params = entry[1] if len(entry) > 1 else None
                if params:
                    _check_params(root_effect, params, f"fx long_event {name!r} at tick {entry[0]}")
                events.append(LongEvent(y=int(entry[0]), params=dict(params) if params else None))
            per_side.append(events)
        long_events[name] = (per_side[0], per_side[1])
    return long_events


def _build_audio_effects(raw: Optional[KsonAudioEffect]) -> AudioEffectDefs:
    if raw is None:
        return AudioEffectDefs()

    fx_defs = _build_effect_defs(raw.fx.defs, "fx")
    laser_defs = _build_effect_defs(raw.laser.defs, "laser")

    return AudioEffectDefs(
        fx=FxEffectDefs(
            defs=fx_defs,
            param_changes=_build_param_changes(raw.fx.param_change, fx_defs, "fx"),
            long_events=_build_long_events(raw.fx.long_event, fx_defs),
        ),
        laser=LaserEffectDefs(
            defs=laser_defs,
            param_changes=_build_param_changes(raw.laser.param_change, laser_defs, "laser"),
            pulse_events={name: sorted(int(tick) for tick in ticks) for name, ticks in raw.laser.pulse_event.items()},
        ),
    )


def _build_chart(document: KsonDocument) -> Chart:
    note = document.note
    _check_lane_count(note.bt, BT_LANE_COUNT, "bt")
    _check_lane_count(note.fx, FX_LANE_COUNT, "fx")
    _check_lane_count(note.laser, LASER_LANE_COUNT, "laser")

    tempo = _build_tempo(document.beat)
    bt_lanes = [_build_interval_lane(entries, "bt", index) for index, entries in enumerate(note.bt)]
    fx_lanes = [_build_interval_lane(entries, "fx", index) for index, entries in enumerate(note.fx)]
    laser_lanes = [_build_laser_lane(entries, index) for index, entries in enumerate(note.laser)]

    return Chart(
        tempo=tempo,
        bt=bt_lanes,
        fx=fx_lanes,
        laser=laser_lanes,
        audio_effects=_build_audio_effects(document.audio.audio_effect),
        title=document.meta.title,
    )


def parse_chart(document: Mapping[str, Any], *, source_path: Optional[Path] = None) -> LoadedChart:
    if not isinstance(document, Mapping):
        raise KsonParseError("Chart root must be a JSON object")
    try:
        parsed = KsonDocument.model_validate(dict(document))
    except ValidationError as exc:
        raise KsonParseError(f"Chart does not match the KSON document shape:\n{exc}") from exc

    chart = _build_chart(parsed)
    return LoadedChart(chart=chart, source_path=source_path, title=parsed.meta.title)


def _read_text_utf8(chart_path: Path) -> str:
    try:
        return chart_path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise KsonParseError(f"Chart is not valid UTF-8: {chart_path}") from exc
    except OSError as exc:
        raise KsonParseError(f"Failed to read chart: {chart_path}") from exc


def load_chart(chart_path: Path) -> LoadedChart:
    resolved_path = Path(chart_path)
    raw_text = _read_text_utf8(resolved_path)
    try:
        document = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise KsonParseError(f"Chart is not valid JSON: {resolved_path}. Error: {exc}") from exc

    loaded = parse_chart(document, source_path=resolved_path)
    logger.debug("Loaded chart %r from %s", loaded.title, resolved_path)
    return loaded
