"""Step payload codec tests: per-kind decoding, malformed input, coercion."""

import json

import pytest

from metrica.models.workflow import BUDGET, CONTRACT, DOCUMENTATION, POINT_CONTROL, RECEIPT
from metrica.services.step_payloads import (
    BudgetItem,
    BudgetPayload,
    ChecklistPayload,
    PointControlPayload,
    TextPayload,
    coerce_payload,
    decode_payload,
    payload_type,
)


class TestPayloadType:
    @pytest.mark.parametrize("kind,expected", [
        (DOCUMENTATION, ChecklistPayload),
        (POINT_CONTROL, PointControlPayload),
        (BUDGET, BudgetPayload),
        (CONTRACT, TextPayload),
        (RECEIPT, TextPayload),
        ("unknown_kind", TextPayload),
    ])
    def test_variant_by_kind(self, kind, expected):
        assert payload_type(kind) is expected

    def test_documentation_without_checklist_is_text(self):
        assert payload_type(DOCUMENTATION, has_checklist=False) is TextPayload


class TestDecode:
    @pytest.mark.parametrize("notes", [None, "", "{broken", "[1, 2]", "\"text\""])
    def test_bad_checklist_notes_give_empty_map(self, notes):
        assert decode_payload(DOCUMENTATION, notes).items == {}

    def test_checklist_keeps_only_checked_items(self):
        payload = decode_payload(DOCUMENTATION, '{"1": 1, "2": 0, "3": true, "4": false}')
        assert payload.items == {"1": True, "3": True}
        assert payload.checked_count() == 2

    def test_point_control(self):
        payload = decode_payload(POINT_CONTROL, '{"m": "10", "p": 4, "v": null}')
        assert (payload.m, payload.p, payload.v) == ("10", "4", "")

    def test_point_control_malformed(self):
        assert decode_payload(POINT_CONTROL, "not json") == PointControlPayload()

    def test_budget_items(self):
        payload = decode_payload(BUDGET, json.dumps([
            {"description": "GNSS", "qty": 2, "price": 1500},
            {"description": "Marcos", "qty": "x", "price": "abc"},
            "ignored",
        ]))
        assert payload.items == [
            BudgetItem("GNSS", 2, 1500.0),
            BudgetItem("Marcos", 1, 0.0),
        ]
        assert payload.total == 3000.0

    def test_legacy_budget_text_kept(self):
        payload = decode_payload(BUDGET, "R$ 5.000,00 à vista")
        assert payload.items == []
        assert payload.text == "R$ 5.000,00 à vista"
        assert payload.encode() == "R$ 5.000,00 à vista"

    def test_text_is_opaque(self):
        assert decode_payload(CONTRACT, '{"a": 1}').text == '{"a": 1}'


class TestChecklistToggle:
    def test_toggle_returns_new_payload(self):
        original = ChecklistPayload(items={"1": True})
        toggled = original.toggle("1")
        assert original.items == {"1": True}
        assert toggled.items == {}
        assert not toggled.is_checked("1")

    def test_toggle_missing_key_checks_it(self):
        assert ChecklistPayload().toggle(7).items == {"7": True}

    @pytest.mark.parametrize("key", ["1", "2"])
    def test_double_toggle_is_identity(self, key):
        payload = decode_payload(DOCUMENTATION, '{"1": true, "3": true}')
        assert payload.toggle(key).toggle(key).encode() == payload.encode()

    def test_double_toggle_from_empty_is_empty(self):
        assert ChecklistPayload().toggle("4").toggle("4").items == {}


class TestCoerce:
    def test_string_is_decoded(self):
        assert coerce_payload(DOCUMENTATION, '{"1": true}').items == {"1": True}

    def test_parsed_object(self):
        payload = coerce_payload(POINT_CONTROL, {"m": "1", "p": "2", "v": "3"})
        assert payload.encode() == '{"m": "1", "p": "2", "v": "3"}'

    def test_instance_passes_through(self):
        payload = BudgetPayload(items=[BudgetItem("A", 1, 10.0)])
        assert coerce_payload(BUDGET, payload) is payload

    def test_wrong_shape_gives_empty(self):
        assert coerce_payload(BUDGET, {"description": "x"}).items == []

    def test_text_from_number(self):
        assert coerce_payload(RECEIPT, 42).text == "42"

    def test_to_dict_is_tagged(self):
        assert TextPayload("x").to_dict() == {"type": "text", "text": "x"}
        assert BudgetPayload().to_dict()["type"] == "budget"
