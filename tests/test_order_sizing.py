import pytest

from autoconvert.order_sizing import format_quantity, parse_amount, precision_from_step


@pytest.mark.parametrize(
    "step, expected",
    [(0.1, 1), (0.01, 2), (0.001, 3), (0.00001, 5), (1e-8, 8), (1.0, 0), (10.0, 0)],
)
def test_precision_from_step(step, expected):
    assert precision_from_step(step) == expected


def test_precision_defaults_to_zero_for_missing_step():
    assert precision_from_step(None) == 0
    assert precision_from_step(0.0) == 0
    assert precision_from_step(-0.01) == 0
    assert precision_from_step("junk") == 0


def test_format_quantity_truncates():
    assert format_quantity(1.0, 3) == "1.000"
    assert format_quantity(0.1 + 0.2, 2) == "0.30"
    assert format_quantity(1.99999, 2) == "1.99"
    assert format_quantity(123.45, 0) == "123"


def test_format_quantity_rejects_nan():
    with pytest.raises(ValueError):
        format_quantity(float("nan"), 2)


def test_parse_amount():
    assert parse_amount("123.45") == pytest.approx(123.45)
    for bad in (None, "", "abc", "nan", True):
        with pytest.raises(ValueError):
            parse_amount(bad)
