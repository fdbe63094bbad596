from __future__ import annotations

from audio_effects import AudioEffectKind, Gate, Phaser, ReTrigger, create_effect
from chart_models import (
    AudioEffectDefs,
    FxEffectDefs,
    GraphPoint,
    Interval,
    LaserEffectDefs,
    LaserSection,
    LongEvent,
    Side,
    Track,
    TrackKind,
)
from effect_timeline import (
    ParamChange,
    build_effect_timeline,
    find_note_at,
    flatten_param_changes,
    latest_pulse_event,
    resolve_effect,
)
import test_chart
from test_chart import make_chart


def _section(y, length=192):
    return LaserSection(y=y, points=(GraphPoint(ry=0, v=0.0), GraphPoint(ry=length, v=1.0)))


def test_resolve_applies_changes_up_to_and_including_tick():
    root = create_effect(AudioEffectKind.GATE)
    changes = [ParamChange(y=0, key="wave_length", raw="1/8"), ParamChange(y=100, key="wave_length", raw="1/4")]

    assert resolve_effect(root, changes, 99).wave_length.raw == "1/8"
    assert resolve_effect(root, changes, 100).wave_length.raw == "1/4"


def test_resolve_is_causal():
    root = create_effect(AudioEffectKind.GATE)
    base = [ParamChange(y=10, key="rate", raw="30%")]
    with_future = base + [ParamChange(y=500, key="rate", raw="90%"), ParamChange(y=501, key="mix", raw="0%>10%")]

    assert resolve_effect(root, base, 200) == resolve_effect(root, with_future, 200)


def test_resolve_last_change_wins_and_root_is_untouched():
    root = create_effect(AudioEffectKind.GATE)
    changes = [ParamChange(y=0, key="rate", raw="10%"), ParamChange(y=5, key="rate", raw="20%")]

    resolved = resolve_effect(root, changes, 10)
    assert resolved.rate.raw == "20%"
    assert root.rate.raw == "60%"


def test_resolve_ignores_unknown_keys():
    root = create_effect(AudioEffectKind.GATE)
    changes = [ParamChange(y=0, key="pitch", raw="12"), ParamChange(y=0, key="rate", raw="20%")]

    resolved = resolve_effect(root, changes, 0)
    assert resolved == root.derive("rate", "20%")


def test_flatten_orders_by_tick_and_keeps_schedule_order_on_ties():
    flattened = flatten_param_changes({"rate": [(50, "10%"), (0, "20%")], "mix": [(0, "0%>30%")]})
    assert flattened == [
        ParamChange(y=0, key="rate", raw="20%"),
        ParamChange(y=0, key="mix", raw="0%>30%"),
        ParamChange(y=50, key="rate", raw="10%"),
    ]
    assert flatten_param_changes(None) == []


def test_find_note_at_needs_exact_start():
    lane = [Interval(y=0, l=96), Interval(y=192, l=96), Interval(y=384, l=0)]
    assert find_note_at(lane, 192) == Interval(y=192, l=96)
    assert find_note_at(lane, 193) is None
    assert find_note_at([], 0) is None


def test_latest_pulse_event_picks_greatest_tick_not_after_position():
    pulses = {"a": [0, 600], "b": [300]}
    assert latest_pulse_event(pulses, 299) == "a"
    assert latest_pulse_event(pulses, 300) == "b"
    assert latest_pulse_event(pulses, 700) == "a"
    assert latest_pulse_event({"a": [10]}, 9) is None


def test_fx_long_event_resolves_schedule_then_event_params():
    retrigger = create_effect(AudioEffectKind.RE_TRIGGER)
    chart = make_chart(
        fx=[[Interval(y=192, l=384)], [Interval(y=96, l=48)]],
        audio_effects=AudioEffectDefs(
            fx=FxEffectDefs(
                defs={"retrigger": retrigger},
                param_changes={
                    "retrigger": {
                        "update_period": [(0, "1/4"), (500, "1/8")],
                        "mix": [(100, "0%>20%")],
                    }
                },
                long_events={
                    "retrigger": (
                        [LongEvent(y=192, params={"mix": "0%>50%"}), LongEvent(y=999)],
                        [LongEvent(y=96)],
                    )
                },
            )
        ),
    )
    timeline = build_effect_timeline(chart)

    assert [item.interval for item in timeline] == [Interval(y=96, l=48), Interval(y=192, l=384)]

    right, left = timeline
    assert right.track == Track(kind=TrackKind.FX, side=Side.RIGHT)
    assert right.effect.update_period.raw == "1/4"
    assert right.effect.mix.raw == retrigger.mix.raw

    assert left.track == Track(kind=TrackKind.FX, side=Side.LEFT)
    assert isinstance(left.effect, ReTrigger)
    assert left.effect.update_period.raw == "1/4"
    assert left.effect.mix.raw == "0%>50%"
    assert left.dom is True


def test_fx_definition_without_long_events_gives_nothing():
    chart = make_chart(
        fx=[[Interval(y=0, l=192)], []],
        audio_effects=AudioEffectDefs(fx=FxEffectDefs(defs={"gate": create_effect(AudioEffectKind.GATE)})),
    )
    assert build_effect_timeline(chart) == ()


def test_laser_sections_use_most_recent_pulse_event():
    gate = create_effect(AudioEffectKind.GATE)
    phaser = create_effect(AudioEffectKind.PHASER)
    chart = make_chart(
        laser=[[_section(0), _section(384), _section(960)], [_section(200, 100)]],
        audio_effects=AudioEffectDefs(
            laser=LaserEffectDefs(
                defs={"a": gate, "b": phaser},
                param_changes={"b": {"stage": [(0, "4"), (900, "8"), (2000, "12")]}},
                pulse_events={"a": [192], "b": [384, 2000]},
            )
        ),
    )
    timeline = build_effect_timeline(chart)

    assert [(item.interval.y, item.interval.l) for item in timeline] == [(200, 100), (384, 192), (960, 192)]

    right, first_left, second_left = timeline
    assert isinstance(right.effect, Gate)
    assert right.track == Track(kind=TrackKind.LASER, side=Side.RIGHT)

    assert isinstance(first_left.effect, Phaser)
    assert first_left.effect.stage.raw == "4"
    assert second_left.effect.stage.raw == "8"
    assert all(item.track.kind == TrackKind.LASER and item.dom for item in timeline)


def test_laser_pulse_without_definition_is_skipped():
    chart = make_chart(
        laser=[[_section(0)], []],
        audio_effects=AudioEffectDefs(laser=LaserEffectDefs(pulse_events={"missing": [0]})),
    )
    assert build_effect_timeline(chart) == ()


def test_effect_timeline_is_sorted_and_repeatable():
    first = build_effect_timeline(test_chart.build_test_chart(difficulty="hard"))
    second = build_effect_timeline(test_chart.build_test_chart(difficulty="hard"))

    starts = [item.interval.y for item in first]
    assert starts == sorted(starts)
    assert first == second
    assert {item.track.kind for item in first} == {TrackKind.FX, TrackKind.LASER}


def test_effect_interval_report_shape():
    timeline = build_effect_timeline(test_chart.build_test_chart(difficulty="easy"))
    payload = timeline[0].to_dict()
    assert payload["y"] == 0
    assert payload["dom"] is True
    assert payload["track"]["side"] in {"left", "right"}
    assert payload["effect"]["type"] in {"re_trigger", "peaking_filter"}


def test_latest_pulse_event_tie_goes_to_effect_listed_last():
    assert latest_pulse_event({"a": [0], "b": [0]}, 10) == "b"
    assert latest_pulse_event({"b": [0], "a": [0]}, 10) == "a"


def test_find_note_at_with_precomputed_starts():
    lane = [Interval(y=0, l=96), Interval(y=192, l=96)]
    starts = [0, 192]
    assert find_note_at(lane, 192, starts) == Interval(y=192, l=96)
    assert find_note_at(lane, 96, starts) is None
