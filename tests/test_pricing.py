import pytest

from app.services.pricing_service import apply_discount, compute_gst_breakdown


def test_gst_extracted_from_inclusive_total():
    breakdown = compute_gst_breakdown(118, gst_enabled=True, gst_rate=18)

    assert breakdown.subtotal == 100.0
    assert breakdown.tax == 18.0
    assert breakdown.total == 118.0
    assert breakdown.tax_rate == 18.0


def test_gst_rounds_to_paise():
    breakdown = compute_gst_breakdown(999, gst_enabled=True, gst_rate=18)

    # 999 * 18 / 118 = 152.3898...
    assert breakdown.tax == 152.39
    assert breakdown.subtotal == 846.61
    assert round(breakdown.subtotal + breakdown.tax, 2) == 999.0


def test_disabled_gst_has_no_tax():
    breakdown = compute_gst_breakdown(499, gst_enabled=False)

    assert breakdown.tax == 0
    assert breakdown.subtotal == 499.0
    assert breakdown.total == 499.0


def test_zero_total():
    breakdown = compute_gst_breakdown(0, gst_enabled=True)

    assert breakdown.tax == 0
    assert breakdown.subtotal == 0


@pytest.mark.parametrize("amount,discount,expected", [
    (1000, 100, 900.0),
    (100, 150, 0.0),
    (499.99, 0.99, 499.0),
])
def test_apply_discount(amount, discount, expected):
    assert apply_discount(amount, discount) == expected
