from __future__ import annotations

import pytest

from audio_effects import (
    EFFECT_TYPES,
    AudioEffectKind,
    AudioSwap,
    BitCrusher,
    Echo,
    PitchShift,
    TapeStop,
    create_effect,
    effect_kind_from_name,
)
from effect_params import BoolParameter, EffectParameter


def test_every_kind_has_a_default_snapshot():
    assert set(EFFECT_TYPES) == set(AudioEffectKind)
    for kind in AudioEffectKind:
        effect = create_effect(kind)
        assert effect.kind == kind
        assert effect.to_dict()["type"] == kind.value


@pytest.mark.parametrize(
    "name, kind",
    [
        ("retrigger", AudioEffectKind.RE_TRIGGER),
        ("Re_Trigger", AudioEffectKind.RE_TRIGGER),
        ("bitcrusher", AudioEffectKind.BIT_CRUSHER),
        ("tapestop", AudioEffectKind.TAPE_STOP),
        ("sidechain", AudioEffectKind.SIDE_CHAIN),
        ("switch_audio", AudioEffectKind.AUDIO_SWAP),
        ("peaking_filter", AudioEffectKind.PEAKING_FILTER),
    ],
)
def test_effect_kind_names(name, kind):
    assert effect_kind_from_name(name) == kind


def test_unknown_effect_name_is_rejected():
    with pytest.raises(ValueError):
        effect_kind_from_name("reverb")


def test_derive_replaces_one_parameter_and_keeps_the_rest():
    echo = create_effect(AudioEffectKind.ECHO)
    derived = echo.derive("feedback_level", "40%")

    assert isinstance(derived, Echo)
    assert derived.feedback_level == EffectParameter.parse("40%")
    assert derived.mix == echo.mix
    assert echo.feedback_level.raw == "100%"


def test_derive_keeps_parameter_type():
    tape_stop = create_effect(AudioEffectKind.TAPE_STOP).derive("trigger", "off>on")
    assert isinstance(tape_stop, TapeStop)
    assert isinstance(tape_stop.trigger, BoolParameter)

    with pytest.raises(ValueError):
        create_effect(AudioEffectKind.PITCH_SHIFT).derive("pitch_quantize", "12")


def test_derive_on_foreign_key_returns_same_snapshot():
    crusher = create_effect(AudioEffectKind.BIT_CRUSHER)
    assert crusher.derive("pitch", "12") is crusher
    assert isinstance(crusher, BitCrusher)


def test_create_effect_applies_params_over_defaults():
    pitch_shift = create_effect(AudioEffectKind.PITCH_SHIFT, {"pitch": "-5", "chunk": "ignored"})
    assert isinstance(pitch_shift, PitchShift)
    assert pitch_shift.pitch.raw == "-5"
    assert pitch_shift.param_list() == ("pitch", "pitch_quantize", "chunk_size", "overlap", "mix")


def test_audio_swap_only_knows_filename():
    swap = create_effect(AudioEffectKind.AUDIO_SWAP)
    assert isinstance(swap, AudioSwap)
    assert swap.filename == ""
    assert swap.derive("filename", "b.ogg").filename == "b.ogg"
    assert swap.derive("mix", "0%") is swap


def test_to_dict_lists_raw_values():
    gate = create_effect(AudioEffectKind.GATE, {"wave_length": "1/4"})
    assert gate.to_dict() == {"type": "gate", "v": {"wave_length": "1/4", "rate": "60%", "mix": "0%>90%"}}
