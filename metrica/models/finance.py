"""
MétricaAgro Workflow Service
Finance models: credit cards for the invoice aggregator and the cash ledger.

Models:
    - CreditCard:            limit plus closing / due day of month
    - CreditCardExpense:     purchase split into monthly installments
    - FinancialTransaction:  income / expense entry; approving a RECIBO books one

Invoices are never stored; they are computed from expenses on read
(services/invoice_service.py).
"""

from datetime import datetime, timezone

from metrica.models import db


class CreditCard(db.Model):
    __tablename__ = "credit_cards"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    credit_limit = db.Column(db.Float, nullable=False, default=0.0)
    closing_day = db.Column(
        db.Integer, nullable=False, default=1,
        comment="Purchases on or after this day roll into the next invoice",
    )
    due_day = db.Column(db.Integer, nullable=False, default=10)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.CheckConstraint("closing_day BETWEEN 1 AND 31", name="ck_credit_card_closing_day"),
        db.CheckConstraint("due_day BETWEEN 1 AND 31", name="ck_credit_card_due_day"),
    )

    expenses = db.relationship(
        "CreditCardExpense", backref="card", lazy="dynamic",
        cascade="all, delete-orphan", order_by="CreditCardExpense.date",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "credit_limit": self.credit_limit,
            "closing_day": self.closing_day,
            "due_day": self.due_day,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<CreditCard {self.id}: {self.name}>"


class CreditCardExpense(db.Model):
    __tablename__ = "credit_card_expenses"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    card_id = db.Column(
        db.Integer, db.ForeignKey("credit_cards.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="SET NULL"), nullable=True,
    )
    description = db.Column(db.String(200), default="")
    category = db.Column(db.String(60), default="Outros")
    amount = db.Column(db.Float, nullable=False, default=0.0)
    installments = db.Column(db.Integer, nullable=False, default=1)
    date = db.Column(db.Date, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "card_id": self.card_id,
            "project_id": self.project_id,
            "description": self.description,
            "category": self.category,
            "amount": self.amount,
            "installments": self.installments,
            "date": self.date.isoformat() if self.date else None,
        }

    def __repr__(self):
        return f"<CreditCardExpense {self.id}: {self.amount} x{self.installments}>"


# ── Cash ledger ──────────────────────────────────────────────────────────────

INCOME = "income"
EXPENSE = "expense"

TX_PENDING = "pending"
TX_PAID = "paid"

PAYMENT_PIX = "pix"


class FinancialTransaction(db.Model):
    __tablename__ = "financial_transactions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    description = db.Column(db.String(255), default="")
    amount = db.Column(db.Float, nullable=False, default=0.0)
    type = db.Column(db.String(10), nullable=False, default=INCOME)
    category = db.Column(db.String(60), default="Outros")
    status = db.Column(db.String(10), nullable=False, default=TX_PENDING)
    payment_method = db.Column(db.String(20), nullable=True)
    due_date = db.Column(db.Date, nullable=True)
    payment_date = db.Column(db.Date, nullable=True)
    scope = db.Column(db.String(20), default="Empresa", comment="Empresa or Pessoal")
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.CheckConstraint("type IN ('income', 'expense')", name="ck_financial_transaction_type"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "description": self.description,
            "amount": self.amount,
            "type": self.type,
            "category": self.category,
            "status": self.status,
            "payment_method": self.payment_method,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "payment_date": self.payment_date.isoformat() if self.payment_date else None,
            "scope": self.scope,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<FinancialTransaction {self.id}: {self.type} {self.amount}>"
