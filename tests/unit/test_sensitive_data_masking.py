import pytest

from config.settings import mask_sensitive_data

pytestmark = pytest.mark.unit

MASK = "***MASKED***"


def _mask(**fields) -> dict:
    return mask_sensitive_data(None, None, {"event": "order.created", **fields})


@pytest.mark.parametrize(
    ("field", "value", "secret"),
    [
        ("cpf", "123.456.789-00", "123.456.789-00"),
        ("cnpj", "12.345.678/0001-90", "12.345.678/0001-90"),
        ("customer_name", "Souza 12345678000190", "12345678000190"),
        ("data", "password='s3cret123'", "s3cret123"),
        ("header", "token=abc123xyz", "abc123xyz"),
        ("header", "Authorization: eyJhbGciOi", "eyJhbGciOi"),
    ],
)
def test_sensitive_values_are_masked(field, value, secret):
    result = _mask(**{field: value})
    assert secret not in result[field]
    assert MASK in result[field]


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("order_number", "ORD-20300110-A1B2C3"),
        ("batch_number", "LOTE-203001100515"),
        ("invoice_number", "NF-48213"),
        ("external_ref", "PO-7781-REM"),
    ],
)
def test_workflow_identifiers_are_kept(field, value):
    assert _mask(**{field: value})[field] == value


def test_non_string_values_are_untouched():
    result = _mask(quantity=12345678901, remaining=[4])
    assert result["quantity"] == 12345678901
    assert result["remaining"] == [4]
