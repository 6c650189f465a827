"""
Finance Blueprint — credit-card invoices.

Endpoints:
  GET /finance/cards                       every card of the user with its current cycle
  GET /finance/cards/<id>/invoices         invoices newest first + available limit
      ?today=YYYY-MM-DD                    (optional reference date for the current cycle)
"""

from flask import Blueprint, jsonify, request

from metrica.blueprints import owned_or_404, require_user
from metrica.models.finance import CreditCard
from metrica.services import invoice_service
from metrica.utils.errors import E, api_error
from metrica.utils.helpers import parse_date

finance_bp = Blueprint("finance", __name__, url_prefix="/api/v1/finance")


def _reference_date():
    raw = request.args.get("today")
    if not raw:
        return None, None
    today = parse_date(raw)
    if today is None:
        return None, api_error(E.VALIDATION_INVALID, f"Invalid date: {raw}")
    return today, None


@finance_bp.route("/cards", methods=["GET"])
def list_cards():
    uid, err = require_user()
    if err:
        return err
    today, err = _reference_date()
    if err:
        return err

    cards = CreditCard.query.filter_by(user_id=uid).order_by(CreditCard.id).all()
    summaries = []
    for card in cards:
        summary = invoice_service.card_summary(card, card.expenses.all(), today)
        summary.pop("invoices")
        summaries.append(summary)
    return jsonify({"items": summaries, "total": len(summaries)})


@finance_bp.route("/cards/<int:card_id>/invoices", methods=["GET"])
def card_invoices(card_id):
    uid, err = require_user()
    if err:
        return err
    card, err = owned_or_404(CreditCard, card_id, uid, "CreditCard")
    if err:
        return err
    today, err = _reference_date()
    if err:
        return err

    return jsonify(invoice_service.card_summary(card, card.expenses.all(), today))
