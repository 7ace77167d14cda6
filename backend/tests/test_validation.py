import math
import pytest
from techservice.errors import ValidationError
from techservice.utils.validation import (
    FieldErrors, optional_text, parse_amount, require_text, resolve_brand, validate_password, validate_status,
)


@pytest.mark.parametrize('raw, expected', [('50.00', 50.0), ('0', 0.0), (12, 12.0), (' 7.5 ', 7.5)])
def test_parse_amount_accepts_numbers(raw, expected):
    assert parse_amount(raw, 'cost') == expected


@pytest.mark.parametrize('raw', ['abc', 'NaN', 'inf', '-1', True, '1,5'])
def test_parse_amount_rejects_bad_values(raw):
    with pytest.raises(ValidationError) as exc:
        parse_amount(raw, 'cost')
    assert 'cost' in exc.value.fields


def test_parse_amount_empty():
    assert parse_amount('', 'cost') is None
    assert parse_amount(None, 'cost') is None
    with pytest.raises(ValidationError) as exc:
        parse_amount('  ', 'cost', required=True)
    assert exc.value.fields == {'cost': 'required'}


def test_parse_amount_never_returns_nan():
    value = parse_amount('1e308', 'cost')
    assert math.isfinite(value)


def test_text_helpers():
    assert require_text('  Printer jam ', 'title') == 'Printer jam'
    with pytest.raises(ValidationError):
        require_text('   ', 'title')
    assert optional_text('') is None
    assert optional_text(' x ') == 'x'


def test_resolve_brand():
    assert resolve_brand('KOBRA') == 'KOBRA'
    assert resolve_brand('') is None
    assert resolve_brand('custom', 'Acme') == 'Acme'
    with pytest.raises(ValidationError) as exc:
        resolve_brand('custom', '')
    assert 'brand_custom' in exc.value.fields


def test_validate_status_and_password():
    assert validate_status('low', ('low', 'high'), 'priority') == 'low'
    with pytest.raises(ValidationError):
        validate_status('nope', ('low', 'high'), 'priority')
    assert validate_password('12345678') == '12345678'
    with pytest.raises(ValidationError):
        validate_password('1234567')


def test_field_errors_collects_all():
    errors = FieldErrors()
    errors.check(parse_amount, 'abc', 'a')
    errors.check(require_text, '', 'b')
    with pytest.raises(ValidationError) as exc:
        errors.raise_if_any()
    assert set(exc.value.fields) == {'a', 'b'}
