import pytest

from metricsserver.durations import format_duration, parse_duration


def test_units_scale_consistently():
    assert parse_duration("1m") == 60 * parse_duration("1s")
    assert parse_duration("1h") == 60 * parse_duration("1m")
    assert parse_duration("1s") == 1000 * parse_duration("1ms")
    assert parse_duration("1ms") == 1000 * parse_duration("1us")
    assert parse_duration("1us") == 1000 * parse_duration("1ns")


def test_micro_sign_variants_agree():
    assert parse_duration("1\u00b5s") == parse_duration("1us") == parse_duration("1\u03bcs")


def test_fractions_and_compound_values():
    assert parse_duration("1.5s") == parse_duration("1s") + parse_duration("500ms")
    assert parse_duration("1h30m") == parse_duration("90m")
    assert parse_duration(".5s") == parse_duration("500ms")
    assert parse_duration("2m3s") == parse_duration("123s")


def test_signs():
    assert parse_duration("-10s") == -parse_duration("10s")
    assert parse_duration("+10s") == parse_duration("10s")
    assert parse_duration("0") == 0


@pytest.mark.parametrize("text", ["", "10", "1x", "abc", ".s", "-", "1s2"])
def test_invalid_durations(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_overflow_rejected():
    with pytest.raises(ValueError):
        parse_duration("9999999999h")


def test_format_known_values():
    assert format_duration(0) == "0s"
    assert format_duration(1000) == "1µs"
    assert format_duration(parse_duration("10s")) == "10s"


def test_format_negative_prefix():
    assert format_duration(-parse_duration("10s")) == "-" + format_duration(parse_duration("10s"))


@pytest.mark.parametrize(
    "value",
    [1, 999, 1000, 1500, 2_000_000, 123_456_789, 10**9, 61 * 10**9,
     3_600_000_000_001, 7_325_500_000_000, -45_000_000],
)
def test_round_trip(value):
    assert parse_duration(format_duration(value)) == value


@pytest.mark.parametrize("text", ["1s", "2m", "3h", "10s"])
def test_help_examples_parse_and_round_trip(text):
    value = parse_duration(text)
    assert value > 0
    assert parse_duration(format_duration(value)) == value