"""Invoice aggregation: cycle assignment, installments, card summary."""

from datetime import date
from types import SimpleNamespace

import pytest

from metrica.services.invoice_service import card_summary, compute_invoices


def _card(closing_day=10, credit_limit=10000.0, card_id=1):
    return SimpleNamespace(
        id=card_id, closing_day=closing_day, credit_limit=credit_limit,
        to_dict=lambda: {"id": card_id, "name": "Visa"},
    )


def _expense(purchased, amount, installments=1, card_id=1, expense_id=1, description="Combustível"):
    return SimpleNamespace(
        id=expense_id, card_id=card_id, date=purchased, amount=amount,
        installments=installments, description=description, category="Campo",
    )


# ═════════════════════════════════════════════════════════════════════════════
# compute_invoices
# ═════════════════════════════════════════════════════════════════════════════


class TestComputeInvoices:
    def test_before_closing_day_stays_in_month(self):
        invoices = compute_invoices(_card(10), [_expense(date(2026, 3, 1), 100)])
        assert list(invoices) == ["2026-03"]
        assert invoices["2026-03"]["total"] == 100

    def test_after_closing_day_rolls_over(self):
        invoices = compute_invoices(_card(10), [_expense(date(2026, 3, 15), 100)])
        assert list(invoices) == ["2026-04"]

    def test_on_closing_day_rolls_over(self):
        invoices = compute_invoices(_card(10), [_expense(date(2026, 3, 10), 100)])
        assert list(invoices) == ["2026-04"]

    def test_installments_split_evenly(self):
        invoices = compute_invoices(_card(10), [_expense(date(2026, 3, 1), 300, installments=3)])
        assert {k: v["total"] for k, v in invoices.items()} == {
            "2026-03": 100.0, "2026-04": 100.0, "2026-05": 100.0,
        }
        items = [invoices[k]["items"][0] for k in sorted(invoices)]
        assert [i["installment"] for i in items] == [1, 2, 3]
        assert all(i["installments"] == 3 for i in items)

    def test_installments_cross_year_with_rollover(self):
        invoices = compute_invoices(_card(5), [_expense(date(2026, 11, 20), 200, installments=2)])
        assert sorted(invoices) == ["2026-12", "2027-01"]

    def test_uneven_split_not_rounded(self):
        invoices = compute_invoices(_card(10), [_expense(date(2026, 3, 1), 100, installments=3)])
        amounts = [v["items"][0]["installment_amount"] for v in invoices.values()]
        assert amounts == [pytest.approx(100 / 3)] * 3

    def test_totals_accumulate(self):
        invoices = compute_invoices(_card(10), [
            _expense(date(2026, 3, 1), 50, expense_id=1),
            _expense(date(2026, 3, 2), 70, expense_id=2),
        ])
        assert invoices["2026-03"]["total"] == 120
        assert [i["expense_id"] for i in invoices["2026-03"]["items"]] == [1, 2]

    def test_other_card_and_bad_dates_ignored(self):
        invoices = compute_invoices(_card(10), [
            _expense(date(2026, 3, 1), 50, card_id=2),
            _expense("not a date", 70),
            _expense(None, 70),
        ])
        assert invoices == {}

    @pytest.mark.parametrize("installments", [0, None, "abc", -2])
    def test_bad_installment_count_means_one(self, installments):
        invoices = compute_invoices(_card(10), [_expense(date(2026, 3, 1), 80, installments=installments)])
        assert invoices["2026-03"]["total"] == 80
        assert invoices["2026-03"]["items"][0]["installments"] == 1

    def test_iso_string_dates_accepted(self):
        invoices = compute_invoices(_card(10), [_expense("2026-03-12", 10)])
        assert list(invoices) == ["2026-04"]


# ═════════════════════════════════════════════════════════════════════════════
# card_summary
# ═════════════════════════════════════════════════════════════════════════════


class TestCardSummary:
    def test_current_cycle_and_available_limit(self):
        expenses = [
            _expense(date(2026, 3, 1), 1200, installments=2, expense_id=1),
            _expense(date(2026, 3, 20), 300, expense_id=2),
        ]
        summary = card_summary(_card(10, credit_limit=5000), expenses, today=date(2026, 4, 5))

        assert summary["current_cycle"] == "2026-04"
        assert summary["current_total"] == 900
        assert summary["available_limit"] == 4100
        assert [inv["cycle"] for inv in summary["invoices"]] == ["2026-04", "2026-03"]
        assert summary["card"] == {"id": 1, "name": "Visa"}

    def test_no_expenses(self):
        summary = card_summary(_card(credit_limit=2000), [], today=date(2026, 1, 15))
        assert summary["current_total"] == 0.0
        assert summary["available_limit"] == 2000
        assert summary["invoices"] == []
