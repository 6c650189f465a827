"""Finance API tests — /api/v1/finance/cards."""

from datetime import date

from metrica.models import db
from metrica.models.finance import CreditCard, CreditCardExpense
from tests.conftest import OTHER_USER_ID, TEST_USER_ID


def _card(user_id=TEST_USER_ID, **kw):
    card = CreditCard(
        user_id=user_id,
        name=kw.pop("name", "Nubank"),
        credit_limit=kw.pop("credit_limit", 5000.0),
        closing_day=kw.pop("closing_day", 10),
        **kw,
    )
    db.session.add(card)
    db.session.flush()
    return card


def _expense(card, purchased, amount, installments=1):
    exp = CreditCardExpense(
        user_id=card.user_id, card_id=card.id, date=purchased,
        amount=amount, installments=installments, description="Diesel",
    )
    db.session.add(exp)
    db.session.flush()
    return exp


class TestCardInvoices:
    def test_invoices_newest_first(self, client, auth_headers):
        card = _card()
        _expense(card, date(2026, 3, 1), 300, installments=3)
        _expense(card, date(2026, 3, 12), 100)
        db.session.commit()

        res = client.get(
            f"/api/v1/finance/cards/{card.id}/invoices?today=2026-04-02",
            headers=auth_headers,
        )

        assert res.status_code == 200
        data = res.get_json()
        assert [inv["cycle"] for inv in data["invoices"]] == ["2026-05", "2026-04", "2026-03"]
        assert data["current_cycle"] == "2026-04"
        assert data["current_total"] == 200
        assert data["available_limit"] == 4800

    def test_brazilian_date_format_accepted(self, client, auth_headers):
        card = _card()
        db.session.commit()
        res = client.get(
            f"/api/v1/finance/cards/{card.id}/invoices?today=05/01/2026",
            headers=auth_headers,
        )
        assert res.get_json()["current_cycle"] == "2026-01"

    def test_bad_reference_date_is_400(self, client, auth_headers):
        card = _card()
        db.session.commit()
        res = client.get(
            f"/api/v1/finance/cards/{card.id}/invoices?today=ontem",
            headers=auth_headers,
        )
        assert res.status_code == 400

    def test_other_users_card_is_404(self, client):
        card = _card(user_id=OTHER_USER_ID)
        db.session.commit()
        res = client.get(
            f"/api/v1/finance/cards/{card.id}/invoices",
            headers={"X-User-ID": TEST_USER_ID},
        )
        assert res.status_code == 404


class TestCardList:
    def test_lists_only_own_cards(self, client, auth_headers):
        mine = _card(name="Visa")
        _card(user_id=OTHER_USER_ID, name="Master")
        _expense(mine, date(2026, 6, 2), 250)
        db.session.commit()

        res = client.get("/api/v1/finance/cards?today=2026-06-20", headers=auth_headers)

        assert res.status_code == 200
        data = res.get_json()
        assert data["total"] == 1
        item = data["items"][0]
        assert item["card"]["name"] == "Visa"
        assert item["current_total"] == 250
        assert "invoices" not in item
