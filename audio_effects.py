# -*- coding: utf-8 -*-
########################
# audio_effects.py
########################
# Purpose:
# - Audio effect snapshots: one frozen dataclass per effect kind, each a record of named parameters.
# - derive(key, raw) returns a copy with one named parameter replaced.
#
# Design notes:
# - No DSP here. Effect engines read the resolved snapshots.
# - derive on a key the variant does not define returns the same snapshot unchanged.
#   Override sets from charts may name parameters of other effect kinds, and callers
#   rely on those being ignored.
# - The parameter parser is chosen from the current field value, so a field declared
#   as BoolParameter stays a BoolParameter after derive.
# - Defaults follow the KSON reference values.
#
########################
# Interfaces:
# Public enums:
# - class AudioEffectKind(enum.Enum): RE_TRIGGER | GATE | FLANGER | PITCH_SHIFT | BIT_CRUSHER | PHASER |
#     WOBBLE | TAPE_STOP | ECHO | SIDE_CHAIN | AUDIO_SWAP | HIGH_PASS_FILTER | LOW_PASS_FILTER | PEAKING_FILTER
#
# Public dataclasses (all frozen, all subclasses of AudioEffect):
# - ReTrigger, Gate, Flanger, PitchShift, BitCrusher, Phaser, Wobble, TapeStop, Echo, SideChain,
#   AudioSwap, HighPassFilter, LowPassFilter, PeakingFilter
#
# Public classes:
# - class AudioEffect
#   - kind -> AudioEffectKind
#   - param_list() -> tuple[str, ...]
#   - derive(key: str, raw: str) -> AudioEffect
#   - to_dict() -> dict
#
# Public functions:
# - effect_kind_from_name(name: str) -> AudioEffectKind
# - create_effect(kind: AudioEffectKind, params: Optional[Mapping[str, str]] = None) -> AudioEffect
#
########################

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
import enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Type

from effect_params import BoolParameter, EffectParameter


class AudioEffectKind(enum.Enum):
    RE_TRIGGER = "re_trigger"
    GATE = "gate"
    FLANGER = "flanger"
    PITCH_SHIFT = "pitch_shift"
    BIT_CRUSHER = "bit_crusher"
    PHASER = "phaser"
    WOBBLE = "wobble"
    TAPE_STOP = "tape_stop"
    ECHO = "echo"
    SIDE_CHAIN = "side_chain"
    AUDIO_SWAP = "audio_swap"
    HIGH_PASS_FILTER = "high_pass_filter"
    LOW_PASS_FILTER = "low_pass_filter"
    PEAKING_FILTER = "peaking_filter"


# Spellings used by KSON files.
_KIND_ALIASES: Dict[str, AudioEffectKind] = {
    "retrigger": AudioEffectKind.RE_TRIGGER,
    "bitcrusher": AudioEffectKind.BIT_CRUSHER,
    "tapestop": AudioEffectKind.TAPE_STOP,
    "sidechain": AudioEffectKind.SIDE_CHAIN,
    "switch_audio": AudioEffectKind.AUDIO_SWAP,
}


def _param(text: str) -> Any:
    return field(default_factory=lambda: EffectParameter.parse(text))


def _flag(text: str) -> Any:
    return field(default_factory=lambda: BoolParameter.parse(text))


@dataclass(frozen=True)
class AudioEffect:
    kind: ClassVar[AudioEffectKind]

    @classmethod
    def param_list(cls) -> Tuple[str, ...]:
        return tuple(item.name for item in fields(cls))

    def derive(self, key: str, raw: str) -> AudioEffect:
        if key not in self.param_list():
            return self
        current = getattr(self, key)
        return replace(self, **{key: type(current).parse(raw)})

    def to_dict(self) -> Dict[str, Any]:
        values = {name: getattr(self, name).raw for name in self.param_list()}
        return {"type": self.kind.value, "v": values}


@dataclass(frozen=True)
class ReTrigger(AudioEffect):
    kind: ClassVar[AudioEffectKind] = AudioEffectKind.RE_TRIGGER
    update_period: EffectParameter = _param("1/2")
    wave_length: EffectParameter = _param("0")
    rate: EffectParameter = _param("70%")
    update_trigger: BoolParameter = _flag("off")
    mix: EffectParameter = _param("0%>100%")


@dataclass(frozen=True)
class Gate(AudioEffect):
    kind: ClassVar[AudioEffectKind] = AudioEffectKind.GATE
    wave_length: EffectParameter = _param("0")
    rate: EffectParameter = _param("60%")
    mix: EffectParameter = _param("0%>90%")


@dataclass(frozen=True)
class Flanger(AudioEffect):
    kind: ClassVar[AudioEffectKind] = AudioEffectKind.FLANGER
    period: EffectParameter = _param("2.0")
    delay: EffectParameter = _param("30samples")
    depth: EffectParameter = _param("45samples")
    feedback: EffectParameter = _param("60%")
    stereo_width: EffectParameter = _param("0%")
    vol: EffectParameter = _param("75%")
    mix: EffectParameter = _param("0%>80%")


@dataclass(frozen=True)
class PitchShift(AudioEffect):
    kind: ClassVar[AudioEffectKind] = AudioEffectKind.PITCH_SHIFT
    pitch: EffectParameter = _param("0")
    pitch_quantize: BoolParameter = _flag("on")
    chunk_size: EffectParameter = _param("700samples")
    overlap: EffectParameter = _param("40%")
    mix: EffectParameter = _param("0%>100%")


@dataclass(frozen=True)
class BitCrusher(AudioEffect):
    kind: ClassVar[AudioEffectKind] = AudioEffectKind.BIT_CRUSHER
    reduction: EffectParameter = _param("0samples")
    mix: EffectParameter = _param("0%>100%")


@dataclass(frozen=True)
class Phaser(AudioEffect):
    kind: ClassVar[AudioEffectKind] = AudioEffectKind.PHASER
    period: EffectParameter = _param("1/2")
    stage: EffectParameter = _param("6")
    lo_freq: EffectParameter = _param("1500Hz")
    hi_freq: EffectParameter = _param("20000Hz")
    q: EffectParameter = _param("0.707")
    feedback: EffectParameter = _param("35%")
    stereo_width: EffectParameter = _param("75%")
    mix: EffectParameter = _param("0%>50%")


@dataclass(frozen=True)
class Wobble(AudioEffect):
    kind: ClassVar[AudioEffectKind] = AudioEffectKind.WOBBLE
    wave_length: EffectParameter = _param("0")
    lo_freq: EffectParameter = _param("500Hz")
    hi_freq: EffectParameter = _param("20000Hz")
    q: EffectParameter = _param("1.414")
    mix: EffectParameter = _param("0%>50%")


@dataclass(frozen=True)
class TapeStop(AudioEffect):
    kind: ClassVar[AudioEffectKind] = AudioEffectKind.TAPE_STOP
    speed: EffectParameter = _param("50%")
    trigger: BoolParameter = _flag("off")
    mix: EffectParameter = _param("0%>100%")


@dataclass(frozen=True)
class Echo(AudioEffect):
    kind: ClassVar[AudioEffectKind] = AudioEffectKind.ECHO
    update_period: EffectParameter = _param("0")
    wave_length: EffectParameter = _param("0")
    update_trigger: BoolParameter = _flag("off")
    feedback_level: EffectParameter = _param("100%")
    mix: EffectParameter = _param("0%>100%")


@dataclass(frozen=True)
class SideChain(AudioEffect):
    kind: ClassVar[AudioEffectKind] = AudioEffectKind.SIDE_CHAIN
    period: EffectParameter = _param("1/4")
    hold_time: EffectParameter = _param("50ms")
    attack_time: EffectParameter = _param("10ms")
    release_time: EffectParameter = _param("1/16")
    ratio: EffectParameter = _param("1>5")


@dataclass(frozen=True)
class AudioSwap(AudioEffect):
    kind: ClassVar[AudioEffectKind] = AudioEffectKind.AUDIO_SWAP
    filename: str = ""

    def derive(self, key: str, raw: str) -> AudioEffect:
        if key != "filename":
            return self
        return replace(self, filename=str(raw))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.kind.value, "v": {"filename": self.filename}}


@dataclass(frozen=True)
class HighPassFilter(AudioEffect):
    kind: ClassVar[AudioEffectKind] = AudioEffectKind.HIGH_PASS_FILTER
    v: EffectParameter = _param("0%-100%")
    freq: EffectParameter = _param("80Hz")
    freq_max: EffectParameter = _param("2000Hz")
    q: EffectParameter = _param("0.7")
    delay: EffectParameter = _param("0.15")
    mix: EffectParameter = _param("0%>100%")


@dataclass(frozen=True)
class LowPassFilter(AudioEffect):
    kind: ClassVar[AudioEffectKind] = AudioEffectKind.LOW_PASS_FILTER
    v: EffectParameter = _param("0%-100%")
    freq: EffectParameter = _param("15000Hz")
    freq_max: EffectParameter = _param("10Hz")
    q: EffectParameter = _param("0.7")
    delay: EffectParameter = _param("0.15")
    mix: EffectParameter = _param("0%>100%")


@dataclass(frozen=True)
class PeakingFilter(AudioEffect):
    kind: ClassVar[AudioEffectKind] = AudioEffectKind.PEAKING_FILTER
    v: EffectParameter = _param("0%-100%")
    freq: EffectParameter = _param("80Hz")
    freq_max: EffectParameter = _param("15000Hz")
    q: EffectParameter = _param("0.7")
    delay: EffectParameter = _param("0.15")
    mix: EffectParameter = _param("0%>100%")


EFFECT_TYPES: Dict[AudioEffectKind, Type[AudioEffect]] = {
    AudioEffectKind.RE_TRIGGER: ReTrigger,
    AudioEffectKind.GATE: Gate,
    AudioEffectKind.FLANGER: Flanger,
    AudioEffectKind.PITCH_SHIFT: PitchShift,
    AudioEffectKind.BIT_CRUSHER: BitCrusher,
    AudioEffectKind.PHASER: Phaser,
    AudioEffectKind.WOBBLE: Wobble,
    AudioEffectKind.TAPE_STOP: TapeStop,
    AudioEffectKind.ECHO: Echo,
    AudioEffectKind.SIDE_CHAIN: SideChain,
    AudioEffectKind.AUDIO_SWAP: AudioSwap,
    AudioEffectKind.HIGH_PASS_FILTER: HighPassFilter,
    AudioEffectKind.LOW_PASS_FILTER: LowPassFilter,
    AudioEffectKind.PEAKING_FILTER: PeakingFilter,
}


def effect_kind_from_name(name: str) -> AudioEffectKind:
    normalized = str(name or "").strip().lower()
    if normalized in _KIND_ALIASES:
        return _KIND_ALIASES[normalized]
    try:
        return AudioEffectKind(normalized)
    except ValueError as exc:
        raise ValueError(f"Unknown audio effect type: {name!r}") from exc


def create_effect(kind: AudioEffectKind, params: Optional[Mapping[str, str]] = None) -> AudioEffect:
    """Build a root effect definition: reference defaults with the given parameters applied."""
    effect: AudioEffect = EFFECT_TYPES[kind]()
    for key, raw in (params or {}).items():
        effect = effect.derive(str(key), str(raw))
    return effect


def _run_unit_tests() -> None:
    gate = create_effect(AudioEffectKind.GATE)
    assert gate.param_list() == ("wave_length", "rate", "mix")

    derived = gate.derive("wave_length", "1/8")
    assert isinstance(derived, Gate)
    assert derived.wave_length.raw == "1/8"
    assert gate.wave_length.raw == "0"

    assert gate.derive("no_such_param", "1/8") is gate

    retrigger = create_effect(effect_kind_from_name("retrigger"), {"update_trigger": "off>on"})
    assert isinstance(retrigger, ReTrigger)
    assert retrigger.update_trigger.evaluate(is_on=True) is True

    swap = create_effect(AudioEffectKind.AUDIO_SWAP, {"filename": "alt.ogg"})
    assert swap.to_dict() == {"type": "audio_swap", "v": {"filename": "alt.ogg"}}
    assert swap.derive("mix", "50%") is swap


if __name__ == "__main__":
    _run_unit_tests()
    print("audio_effects.py: ok")
