# Overview: Pytest coverage for payment summary derivation.

import pytest

from venueops.services.payment_service import (
    PAYMENT_SUMMARY_PAID,
    PAYMENT_SUMMARY_PARTIAL,
    PAYMENT_SUMMARY_PENDING,
    derive_payment_summary,
)


@pytest.mark.parametrize(
    "total, paid, status, due",
    [
        (100000, 0, PAYMENT_SUMMARY_PENDING, 100000),
        (100000, 60000, PAYMENT_SUMMARY_PARTIAL, 40000),
        (100000, 100000, PAYMENT_SUMMARY_PAID, 0),
        (100000, 120000, PAYMENT_SUMMARY_PAID, 0),
        (0, 0, PAYMENT_SUMMARY_PENDING, 0),
        # Nothing to pay is never "paid"
        (0, 5000, PAYMENT_SUMMARY_PENDING, 0),
    ],
)
def test_summary_thresholds(total, paid, status, due):
    summary = derive_payment_summary(total, paid)
    assert summary.status == status
    assert summary.amount_due_cents == due


def test_summary_is_deterministic():
    assert derive_payment_summary(128520, 50000) == derive_payment_summary(128520, 50000)


def test_none_values_treated_as_zero():
    summary = derive_payment_summary(None, None)
    assert summary.status == PAYMENT_SUMMARY_PENDING
    assert summary.amount_due_cents == 0
