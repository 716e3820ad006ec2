import pytest

from shiftmint.formatting import format_fixed, format_number, split_cents


@pytest.mark.parametrize('value, expected', [
    (6, '6'),
    (6.0, '6'),
    (6.5, '6.5'),
    (0.1, '0.1'),
    (1e-5, '0.00001'),
    (1.5e-6, '0.0000015'),
    (1e-7, '1e-7'),
    (1.5e-7, '1.5e-7'),
    (1e16, '10000000000000000'),
    (1e21, '1e+21'),
    (-2.25, '-2.25'),
])
def test_format_number_prints_like_the_dashboard(value, expected):
    assert format_number(value) == expected


@pytest.mark.parametrize('value, expected', [
    (12.5, '13'),
    (62.5, '63'),
    (90.0, '90'),
    (99.4, '99'),
])
def test_format_fixed_rounds_half_up(value, expected):
    assert format_fixed(value) == expected


def test_format_fixed_with_decimals():
    assert format_fixed(0.125, 2) == '0.13'
    assert format_fixed(3, 2) == '3.00'


def test_split_cents_keeps_the_rounded_total():
    shares = split_cents([10 / 3] * 3, 10)

    assert shares == [3.34, 3.33, 3.33]
    assert round(sum(shares), 2) == 10
