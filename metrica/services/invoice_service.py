"""
Credit-card invoice aggregation.

Every expense is split evenly into its installments and each installment is
assigned to a billing cycle ``YYYY-MM``:

    nominal month  = purchase month + installment index
    cycle          = nominal month + 1   when purchase day >= card closing day
                   = nominal month       otherwise

Installment amounts are ``amount / installments`` and are not rounded, so
the parts may differ from the original amount by a floating remainder.
"""

import logging
from datetime import date

from metrica.utils.helpers import parse_date

logger = logging.getLogger(__name__)


def cycle_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def _shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def _installment_count(value) -> int:
    try:
        count = int(value or 1)
    except (TypeError, ValueError):
        return 1
    return max(count, 1)


def compute_invoices(card, expenses) -> dict:
    """
    Bucket ``expenses`` of ``card`` into billing cycles.

    Returns ``{"YYYY-MM": {"total": float, "items": [...]}}``; expenses of
    other cards and expenses without a usable date are ignored.
    """
    closing_day = getattr(card, "closing_day", None) or 1
    invoices: dict[str, dict] = {}

    for expense in expenses:
        if expense.card_id != card.id:
            continue
        purchased = parse_date(expense.date)
        if purchased is None:
            logger.debug("Expense %s has no valid date, skipped", expense.id)
            continue

        installments = _installment_count(expense.installments)
        installment_amount = (expense.amount or 0) / installments
        rollover = 1 if purchased.day >= closing_day else 0

        for i in range(installments):
            year, month = _shift_month(purchased.year, purchased.month, i + rollover)
            bucket = invoices.setdefault(cycle_key(year, month), {"total": 0.0, "items": []})
            bucket["total"] += installment_amount
            bucket["items"].append({
                "expense_id": expense.id,
                "description": expense.description,
                "category": expense.category,
                "date": purchased.isoformat(),
                "installment": i + 1,
                "installments": installments,
                "installment_amount": installment_amount,
            })

    return invoices


def card_summary(card, expenses, today: date | None = None) -> dict:
    """Invoices newest first plus the current cycle and the available limit."""
    today = today or date.today()
    invoices = compute_invoices(card, expenses)
    current_key = cycle_key(today.year, today.month)
    current_total = invoices.get(current_key, {}).get("total", 0.0)
    limit = card.credit_limit or 0.0

    return {
        "card": card.to_dict(),
        "current_cycle": current_key,
        "current_total": current_total,
        "credit_limit": limit,
        "available_limit": limit - current_total,
        "invoices": [
            {"cycle": key, **invoices[key]}
            for key in sorted(invoices, reverse=True)
        ],
    }
