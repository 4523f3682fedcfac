import pytest

from road_to_italy.models import ValidationError
from road_to_italy.tracker import Mode, is_typeable, parse_amount, round2


@pytest.mark.parametrize(
    "raw,expected",
    [("2.5", 2.5), ("7", 7.0), (".5", 0.5), ("3.", 3.0), (" 4 ", 4.0), ("0012.30", 12.3)],
)
def test_parse_amount_accepts_plain_decimals(raw, expected):
    assert parse_amount(raw, Mode.ADD) == expected
    assert parse_amount(raw, Mode.EDIT) == expected


@pytest.mark.parametrize("raw", ["abc", "", "-1", ".", "1e3", "inf", "nan", "1,5", "+2", None])
def test_parse_amount_rejects_for_both_modes(raw):
    for mode in (Mode.ADD, Mode.EDIT):
        with pytest.raises(ValidationError):
            parse_amount(raw, mode)


def test_zero_boundary():
    with pytest.raises(ValidationError):
        parse_amount("0", Mode.ADD)
    with pytest.raises(ValidationError):
        parse_amount("0.00", Mode.ADD)
    assert parse_amount("0", Mode.EDIT) == 0.0


def test_overflowing_digits_rejected():
    with pytest.raises(ValidationError):
        parse_amount("9" * 400, Mode.EDIT)


def test_round2_half_up():
    assert round2(12.5) == 12.5
    assert round2(0.125) == 0.13
    assert round2(2.675 + 0.0001) == 2.68
    assert round2(10.0 + 2.5) == 12.5
    assert round2(0.004) == 0.0


@pytest.mark.parametrize("text", ["", "1", "12.", ".5", "12.50"])
def test_typeable(text):
    assert is_typeable(text)


@pytest.mark.parametrize("text", ["a", "1.2.3", "-1", "1 ", "1e5"])
def test_not_typeable(text):
    assert not is_typeable(text)
