"""
MétricaAgro Workflow Service
Reference-table models used by projects.

Models:
    - Client:              property owner / contracting party
    - RuralProperty:       surveyed rural property
    - Professional:        responsible surveyor / engineer
    - Service:             service catalog entry (name drives the workflow template)
    - Registry:            land registry office, identified by its CNS code
    - BudgetItemTemplate:  default budget line used to seed the budget step

These are plain data-entry records; the workflow engine only reads them.
"""

import json
from datetime import datetime, timezone

from metrica.models import db


def _utcnow():
    return datetime.now(timezone.utc)


class Client(db.Model):
    __tablename__ = "clients"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=True, index=True)
    name = db.Column(db.String(200), nullable=False)
    cpf_cnpj = db.Column(db.String(20), default="")
    address = db.Column(db.Text, default="")
    marital_status = db.Column(db.String(40), nullable=True)
    profession = db.Column(db.String(100), nullable=True)
    rg = db.Column(db.String(40), nullable=True)
    email = db.Column(db.String(200), nullable=True)
    phone = db.Column(db.String(40), nullable=True)
    nationality = db.Column(db.String(60), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "cpf_cnpj": self.cpf_cnpj,
            "address": self.address,
            "marital_status": self.marital_status,
            "profession": self.profession,
            "rg": self.rg,
            "email": self.email,
            "phone": self.phone,
            "nationality": self.nationality,
        }

    def __repr__(self):
        return f"<Client {self.id}: {self.name}>"


class RuralProperty(db.Model):
    __tablename__ = "rural_properties"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=True, index=True)
    client_id = db.Column(
        db.Integer, db.ForeignKey("clients.id", ondelete="SET NULL"), nullable=True,
    )
    name = db.Column(db.String(200), nullable=False)
    area_ha = db.Column(db.Float, default=0.0)
    registration_number = db.Column(db.String(60), default="", comment="Matrícula")
    municipality = db.Column(db.String(100), default="")
    uf = db.Column(db.String(2), default="")
    cri = db.Column(db.String(200), default="")
    comarca = db.Column(db.String(100), default="")
    incra_code = db.Column(db.String(40), default="")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "client_id": self.client_id,
            "name": self.name,
            "area_ha": self.area_ha,
            "registration_number": self.registration_number,
            "municipality": self.municipality,
            "uf": self.uf,
            "cri": self.cri,
            "comarca": self.comarca,
            "incra_code": self.incra_code,
        }

    def __repr__(self):
        return f"<RuralProperty {self.id}: {self.name}>"


class Professional(db.Model):
    __tablename__ = "professionals"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=True, index=True)
    name = db.Column(db.String(200), nullable=False)
    crea = db.Column(db.String(40), default="")
    cpf = db.Column(db.String(20), default="")
    address = db.Column(db.Text, default="")
    phone = db.Column(db.String(40), default="")
    email = db.Column(db.String(200), default="")
    professional_title = db.Column(db.String(100), default="")
    credential_code = db.Column(db.String(20), default="", comment="INCRA credential")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "crea": self.crea,
            "cpf": self.cpf,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "professional_title": self.professional_title,
            "credential_code": self.credential_code,
        }

    def __repr__(self):
        return f"<Professional {self.id}: {self.name}>"


class Service(db.Model):
    """Service catalog entry. ``items_json`` is the list of deliverables."""

    __tablename__ = "services"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=True, index=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    items_json = db.Column(db.Text, default="[]")
    base_price = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    @property
    def items(self) -> list:
        try:
            value = json.loads(self.items_json or "[]")
        except (json.JSONDecodeError, TypeError):
            return []
        return value if isinstance(value, list) else []

    @items.setter
    def items(self, value):
        self.items_json = json.dumps(list(value or []), ensure_ascii=False)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "items": self.items,
            "base_price": self.base_price,
        }

    def __repr__(self):
        return f"<Service {self.id}: {self.name}>"


class Registry(db.Model):
    """Land registry office (CRI). ``cns`` selects the documentation checklist."""

    __tablename__ = "registries"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=True, index=True)
    name = db.Column(db.String(200), nullable=False)
    cns = db.Column(db.String(20), default="", index=True)
    municipality = db.Column(db.String(100), default="")
    uf = db.Column(db.String(2), default="")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "cns": self.cns,
            "municipality": self.municipality,
            "uf": self.uf,
        }

    def __repr__(self):
        return f"<Registry {self.id}: {self.cns}>"


class BudgetItemTemplate(db.Model):
    __tablename__ = "budget_item_templates"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=True, index=True)
    description = db.Column(db.String(200), nullable=False)
    default_price = db.Column(db.Float, nullable=False, default=0.0)
    category = db.Column(db.String(60), default="")
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "description": self.description,
            "default_price": self.default_price,
            "category": self.category,
        }

    def __repr__(self):
        return f"<BudgetItemTemplate {self.id}: {self.description}>"
