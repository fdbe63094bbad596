# -*- coding: utf-8 -*-
########################
# effect_params.py
########################
# Purpose:
# - Typed audio-effect parameter values parsed from chart text.
# - An EffectParameter keeps its raw text and the parsed off/on value ranges.
#
# Design notes:
# - Pure parsing. No DSP here; effect engines evaluate the parsed values.
# - Grammar: "<off>[><on>]", each side "<value>[-<value>]" (min-max range driven by a laser).
# - Values carry a unit so engines can convert (tempo-relative lengths need BPM).
# - Invalid text raises ValueError. kson_store turns it into a load error, so the
#   compiler only ever sees valid text.
#
########################
# Interfaces:
# Public enums:
# - class ValueUnit(enum.Enum): PLAIN | PERCENT | HZ | DB | MS | SEC | SAMPLES | LENGTH | BOOL
#
# Public dataclasses:
# - ParamValue(unit: ValueUnit, value: float)
# - ValueRange(min: ParamValue, max: ParamValue)
#   - value_at(ratio: float) -> ParamValue
# - EffectParameter(raw: str, off: ValueRange, on: Optional[ValueRange])
#   - parse(raw: str) -> EffectParameter
#   - evaluate(*, is_on: bool, ratio: float = 0.0) -> ParamValue
# - BoolParameter(raw: str, off: bool, on: Optional[bool])
#   - parse(raw: str) -> BoolParameter
#   - evaluate(*, is_on: bool) -> bool
#
# Public functions:
# - parse_value(text: str) -> ParamValue
#
########################

from __future__ import annotations

from dataclasses import dataclass
import enum
import re
from typing import Optional, Tuple


class ValueUnit(enum.Enum):
    PLAIN = "plain"
    PERCENT = "percent"
    HZ = "hz"
    DB = "db"
    MS = "ms"
    SEC = "sec"
    SAMPLES = "samples"
    LENGTH = "length"
    BOOL = "bool"


_TRUE_WORDS = {"on", "true"}
_FALSE_WORDS = {"off", "false"}

# Suffix table is ordered so that "khz" is tried before "hz" and "ms" before "s".
_UNIT_SUFFIXES: Tuple[Tuple[str, ValueUnit, float], ...] = (
    ("samples", ValueUnit.SAMPLES, 1.0),
    ("khz", ValueUnit.HZ, 1000.0),
    ("hz", ValueUnit.HZ, 1.0),
    ("db", ValueUnit.DB, 1.0),
    ("ms", ValueUnit.MS, 1.0),
    ("s", ValueUnit.SEC, 1.0),
    ("%", ValueUnit.PERCENT, 1.0),
)

# A minus directly after an exponent marker ("1e-3") belongs to the number, not the range.
_RANGE_BOUND = r"-?(?:[^-]|(?<=[0-9.][eE])-)+"
_RANGE_PATTERN = re.compile(r"^(" + _RANGE_BOUND + r")(?<![0-9.][eE])-(" + _RANGE_BOUND + r")$")


@dataclass(frozen=True)
class ParamValue:
    unit: ValueUnit
    value: float


@dataclass(frozen=True)
class ValueRange:
    min: ParamValue
    max: ParamValue

    def value_at(self, ratio: float) -> ParamValue:
        clamped = min(1.0, max(0.0, float(ratio)))
        if self.min.unit == ValueUnit.BOOL:
            chosen = self.max if clamped >= 0.5 else self.min
            return chosen
        value = float(self.min.value) + (float(self.max.value) - float(self.min.value)) * clamped
        return ParamValue(unit=self.min.unit, value=value)


def _parse_number(text: str, raw: str) -> float:
    try:
        return float(text)
    except ValueError as exc:
        raise ValueError(f"Invalid effect parameter value: {raw!r}") from exc


def parse_value(text: str) -> ParamValue:
    """Parse a single value such as "50%", "1/8", "10kHz", "on" or "-12"."""
    normalized = str(text or "").strip().lower()
    if not normalized:
        raise ValueError("Empty effect parameter value")

    if normalized in _TRUE_WORDS:
        return ParamValue(unit=ValueUnit.BOOL, value=1.0)
    if normalized in _FALSE_WORDS:
        return ParamValue(unit=ValueUnit.BOOL, value=0.0)

    if "/" in normalized:
        numerator_text, denominator_text = normalized.split("/", 1)
        numerator = _parse_number(numerator_text, text)
        denominator = _parse_number(denominator_text, text)
        if denominator == 0.0:
            raise ValueError(f"Invalid effect parameter length (zero denominator): {text!r}")
        return ParamValue(unit=ValueUnit.LENGTH, value=numerator / denominator)

    for suffix, unit, scale in _UNIT_SUFFIXES:
        if normalized.endswith(suffix):
            number = _parse_number(normalized[: -len(suffix)], text)
            if unit == ValueUnit.PERCENT:
                return ParamValue(unit=unit, value=number / 100.0)
            return ParamValue(unit=unit, value=number * scale)

    return ParamValue(unit=ValueUnit.PLAIN, value=_parse_number(normalized, text))


def _parse_range(text: str) -> ValueRange:
    stripped = str(text).strip()
    match = _RANGE_PATTERN.match(stripped)
    if match is None:
        single = parse_value(stripped)
        return ValueRange(min=single, max=single)
    return ValueRange(min=parse_value(match.group(1)), max=parse_value(match.group(2)))


def _split_off_on(raw: str) -> Tuple[str, Optional[str]]:
    text = str(raw or "").strip()
    if ">" not in text:
        return (text, None)
    off_text, on_text = text.split(">", 1)
    return (off_text.strip(), on_text.strip())


@dataclass(frozen=True)
class EffectParameter:
    raw: str
    off: ValueRange
    on: Optional[ValueRange] = None

    @classmethod
    def parse(cls, raw: str) -> EffectParameter:
        off_text, on_text = _split_off_on(raw)
        off_range = _parse_range(off_text)
        on_range = _parse_range(on_text) if on_text is not None else None
        return cls(raw=str(raw).strip(), off=off_range, on=on_range)

    def evaluate(self, *, is_on: bool, ratio: float = 0.0) -> ParamValue:
        # Without a separate "on" value the parameter reads the same in both states.
        if is_on and self.on is not None:
            return self.on.value_at(ratio)
        return self.off.value_at(ratio)


@dataclass(frozen=True)
class BoolParameter:
    raw: str
    off: bool
    on: Optional[bool] = None

    @classmethod
    def parse(cls, raw: str) -> BoolParameter:
        off_text, on_text = _split_off_on(raw)
        off_value = parse_value(off_text)
        if off_value.unit != ValueUnit.BOOL:
            raise ValueError(f"Expected on/off parameter, got: {raw!r}")
        on_flag: Optional[bool] = None
        if on_text is not None:
            on_value = parse_value(on_text)
            if on_value.unit != ValueUnit.BOOL:
                raise ValueError(f"Expected on/off parameter, got: {raw!r}")
            on_flag = on_value.value > 0.0
        return cls(raw=str(raw).strip(), off=off_value.value > 0.0, on=on_flag)

    def evaluate(self, *, is_on: bool) -> bool:
        if is_on and self.on is not None:
            return bool(self.on)
        return bool(self.off)


def _run_unit_tests() -> None:
    assert parse_value("50%") == ParamValue(ValueUnit.PERCENT, 0.5)
    assert parse_value("10kHz") == ParamValue(ValueUnit.HZ, 10000.0)
    assert parse_value("1/8") == ParamValue(ValueUnit.LENGTH, 0.125)
    assert parse_value("-12") == ParamValue(ValueUnit.PLAIN, -12.0)
    assert parse_value("on").unit == ValueUnit.BOOL

    mix = EffectParameter.parse("0%>100%")
    assert mix.evaluate(is_on=False).value == 0.0
    assert mix.evaluate(is_on=True).value == 1.0

    freq = EffectParameter.parse("500Hz-20000Hz")
    assert freq.evaluate(is_on=False, ratio=0.5).value == 10250.0

    pitch = EffectParameter.parse("-12--6")
    assert pitch.off.min.value == -12.0 and pitch.off.max.value == -6.0

    trigger = BoolParameter.parse("off>on")
    assert trigger.evaluate(is_on=False) is False
    assert trigger.evaluate(is_on=True) is True

    try:
        EffectParameter.parse("fast")
    except ValueError:
        pass
    else:
        raise AssertionError("Expected ValueError for non-numeric parameter text")


if __name__ == "__main__":
    _run_unit_tests()
    print("effect_params.py: ok")
