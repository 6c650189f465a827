"""
Step payload codecs — the ``notes`` column as a tagged union keyed by step kind.

    documentation  → ChecklistPayload     {"<item id>": true, ...} checked items only
    point_control  → PointControlPayload  {"m": str, "p": str, "v": str}
    budget         → BudgetPayload        [{"description", "qty", "price"}, ...]
    anything else  → TextPayload          opaque free text

Decoding never raises: malformed JSON degrades to the empty structure of the
variant, so a corrupted note cannot make a project unusable.

Usage:
    payload = decode_payload(step.step_kind, step.notes, has_checklist=True)
    step.notes = payload.encode()
"""

import json
import logging
from dataclasses import dataclass, field

from metrica.models.workflow import BUDGET, DOCUMENTATION, POINT_CONTROL

logger = logging.getLogger(__name__)


def _loads(notes):
    if not notes:
        return None
    try:
        return json.loads(notes)
    except (json.JSONDecodeError, TypeError):
        logger.debug("Step notes are not valid JSON, using default payload")
        return None


@dataclass
class TextPayload:
    text: str = ""

    @classmethod
    def decode(cls, notes):
        return cls(text=notes or "")

    @classmethod
    def from_obj(cls, value):
        return cls(text="" if value is None else str(value))

    def encode(self) -> str:
        return self.text

    def to_dict(self):
        return {"type": "text", "text": self.text}


@dataclass
class ChecklistPayload:
    items: dict = field(default_factory=dict)

    @classmethod
    def decode(cls, notes):
        parsed = _loads(notes)
        return cls.from_obj(parsed)

    @classmethod
    def from_obj(cls, value):
        if not isinstance(value, dict):
            return cls()
        return cls(items={str(k): True for k, v in value.items() if v})

    def toggle(self, item_id) -> "ChecklistPayload":
        """Return a new payload with ``item_id`` flipped. Unchecking drops the key."""
        key = str(item_id)
        items = dict(self.items)
        if items.pop(key, False) is False:
            items[key] = True
        return ChecklistPayload(items=items)

    def is_checked(self, item_id) -> bool:
        return self.items.get(str(item_id), False)

    def checked_count(self) -> int:
        return sum(1 for v in self.items.values() if v)

    def encode(self) -> str:
        return json.dumps(self.items, ensure_ascii=False)

    def to_dict(self):
        return {"type": "checklist", "items": dict(self.items)}


@dataclass
class PointControlPayload:
    m: str = ""
    p: str = ""
    v: str = ""

    @classmethod
    def decode(cls, notes):
        return cls.from_obj(_loads(notes))

    @classmethod
    def from_obj(cls, value):
        if not isinstance(value, dict):
            return cls()
        return cls(
            m=str(value.get("m") or ""),
            p=str(value.get("p") or ""),
            v=str(value.get("v") or ""),
        )

    def encode(self) -> str:
        return json.dumps({"m": self.m, "p": self.p, "v": self.v}, ensure_ascii=False)

    def to_dict(self):
        return {"type": "point_control", "m": self.m, "p": self.p, "v": self.v}


@dataclass
class BudgetItem:
    description: str = ""
    qty: int = 1
    price: float = 0.0

    @classmethod
    def from_obj(cls, value):
        try:
            qty = int(value.get("qty") or 1)
        except (TypeError, ValueError):
            qty = 1
        try:
            price = float(value.get("price") or 0)
        except (TypeError, ValueError):
            price = 0.0
        return cls(description=str(value.get("description") or ""), qty=qty, price=price)

    @property
    def subtotal(self) -> float:
        return self.price * self.qty

    def to_dict(self):
        return {"description": self.description, "qty": self.qty, "price": self.price}


@dataclass
class BudgetPayload:
    """Itemized budget. Legacy free-text budget notes are kept in ``text``."""

    items: list = field(default_factory=list)
    text: str = ""

    @classmethod
    def decode(cls, notes):
        parsed = _loads(notes)
        if isinstance(parsed, list):
            return cls.from_obj(parsed)
        if parsed is None and notes:
            return cls(text=notes)
        return cls()

    @classmethod
    def from_obj(cls, value):
        if not isinstance(value, list):
            return cls()
        return cls(items=[BudgetItem.from_obj(v) for v in value if isinstance(v, dict)])

    @property
    def total(self) -> float:
        return sum(item.subtotal for item in self.items)

    def encode(self) -> str:
        if not self.items and self.text:
            return self.text
        return json.dumps([i.to_dict() for i in self.items], ensure_ascii=False)

    def to_dict(self):
        return {
            "type": "budget",
            "items": [i.to_dict() for i in self.items],
            "text": self.text,
            "total": self.total,
        }


_PAYLOAD_TYPES = {
    DOCUMENTATION: ChecklistPayload,
    POINT_CONTROL: PointControlPayload,
    BUDGET: BudgetPayload,
}


def payload_type(step_kind: str, has_checklist: bool = True):
    """Variant class for a step kind. Documentation without a checklist is free text."""
    if step_kind == DOCUMENTATION and not has_checklist:
        return TextPayload
    return _PAYLOAD_TYPES.get(step_kind, TextPayload)


def decode_payload(step_kind: str, notes, has_checklist: bool = True):
    """Parse persisted ``notes`` into the variant for ``step_kind``."""
    return payload_type(step_kind, has_checklist).decode(notes)


def coerce_payload(step_kind: str, value, has_checklist: bool = True):
    """
    Build a payload from client input: a raw notes string, an already
    parsed JSON value, or a payload instance.
    """
    cls = payload_type(step_kind, has_checklist)
    if isinstance(value, cls):
        return value
    if value is None or isinstance(value, str):
        return cls.decode(value)
    return cls.from_obj(value)
