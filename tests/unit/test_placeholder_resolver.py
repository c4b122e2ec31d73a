"""Placeholder resolver tests: paths, slot discovery and prompt context."""

import pytest

from proposal_engine.layers.layer4_narrative import (
    PlaceholderResolver,
    build_context,
    enrich_context,
    find_slots,
    get_at_path,
    parse_path,
    set_at_path,
)
from proposal_engine.models import format_path


class TestPaths:
    def test_parse_path(self):
        assert parse_path("phases[1].milestones[0].description") == (
            "phases", 1, "milestones", 0, "description"
        )
        assert parse_path(("a", 0)) == ("a", 0)

    def test_format_path(self):
        assert format_path(("phases", 1, "milestones", 0, "description")) == (
            "phases[1].milestones[0].description"
        )
        assert format_path(("items", 0)) == "items[0]"

    def test_get_missing_returns_none(self):
        tree = {"a": {"b": [1, 2]}}
        assert get_at_path(tree, "a.b[1]") == 2
        assert get_at_path(tree, "a.b[5]") is None
        assert get_at_path(tree, "a.c.d") is None

    def test_set_then_get_on_plain_tree(self):
        tree = {"cta": {"headline": "[LLM_PLACEHOLDER: cta_headline]"}}
        set_at_path(tree, "cta.headline", "Approve today")
        assert get_at_path(tree, "cta.headline") == "Approve today"

    def test_set_creates_intermediate_nodes(self):
        tree = {}
        set_at_path(tree, "a.b[1].c", "value")
        assert isinstance(tree["a"]["b"], list)
        assert tree["a"]["b"][0] is None
        assert get_at_path(tree, "a.b[1].c") == "value"

    def test_set_on_model(self, document):
        path = ("phases", 1, "milestones", 2, "description")
        set_at_path(document, path, "Alpha and beta testing.")
        assert get_at_path(document, path) == "Alpha and beta testing."
        assert document.phases[1].milestones[2].description == "Alpha and beta testing."

    def test_root_cannot_be_set(self):
        with pytest.raises(ValueError):
            set_at_path({}, (), "x")


class TestFindSlots:
    def test_pending_values(self, document):
        slots = find_slots(document)
        assert len(slots) == 11
        first = slots[0]
        assert first.path == ("executive_summary", "body")
        assert first.name == "executive_summary"
        assert first.prompt_id == "executive_summary_proposal_v1"
        assert first.original == "[LLM_PLACEHOLDER: executive_summary]"

    def test_sentinel_strings_in_plain_tree(self, document):
        tree = document.to_output()
        slots = find_slots(tree)
        assert [s.dotted_path for s in slots] == [s.dotted_path for s in find_slots(document)]

    def test_unmapped_name(self):
        tree = {"intro": "[LLM_PLACEHOLDER: closing_poem]", "body": "plain"}
        slots = find_slots(tree)
        assert len(slots) == 1
        assert slots[0].name == "closing_poem"
        assert slots[0].prompt_id is None

    def test_custom_prompt_map(self):
        resolver = PlaceholderResolver({"closing_poem": "poem_v1"})
        slots = resolver.find_slots({"intro": "[LLM_PLACEHOLDER: closing_poem]"})
        assert slots[0].prompt_id == "poem_v1"

    def test_filled_document_has_no_slots(self, document):
        for slot in find_slots(document):
            set_at_path(document, slot.path, "Filled.")
        assert find_slots(document) == []


class TestBuildContext:
    def test_document_values(self, document):
        context = build_context(document)
        assert context["client_name"] == "Acme Dental"
        assert context["industry"] == "SaaS"
        assert context["workflow_name"] == "Lead Intake"
        assert context["bleed_amount"] == "$2,000"
        assert context["total_price"] == "$8,700"
        assert context["annual_recovery"] == "$24,000"
        assert context["payback_months"] == 4.4
        assert context["platform"] == "direct"
        assert context["valid_until"] == "March 16, 2026"
        assert context["systems_list"] == "HubSpot, Gmail, Calendly"
        assert context["timeline"] == "4 weeks"
        assert context["key_findings"].startswith("Manual CRM entry drops 15% of leads\n- ")
        assert context["technical_solutions"].startswith("1. Automate CRM entry from web forms")

    def test_phase_and_milestone_keys(self, document):
        context = build_context(document)
        assert context["phase_2_name"] == "Stabilize"
        assert context["phase_3_state"] == "upcoming"
        assert context["milestone_2_2_name"] == "Build"
        assert context["milestone_2_2_price"] == "$4,400"
        assert context["milestone_2_2_duration"] == "1 week"
        assert context["milestone_2_2_percentage"] == 45
        assert "- Core Automation System:" in context["milestone_2_2_deliverables"]

    def test_extra_overrides(self, document):
        context = build_context(document, {"client_name": "ACME", "tone": "formal"})
        assert context["client_name"] == "ACME"
        assert context["tone"] == "formal"

    def test_defaults_for_empty_tree(self):
        context = build_context({})
        assert context["client_name"] == "Client"
        assert context["total_price"] == "$0"
        assert context["timeline"] == "TBD"
        assert context["systems_list"] == "primary systems"


class TestEnrichContext:
    def test_phase_slot(self, document):
        enriched = enrich_context("phase_2_description", build_context(document))
        assert enriched["phase_number"] == 2
        assert enriched["phase_name"] == "Stabilize"
        assert enriched["state"] == "current"

    def test_milestone_slot(self, document):
        enriched = enrich_context("milestone_2_3_description", build_context(document))
        assert enriched["milestone_number"] == "2.3"
        assert enriched["milestone_name"] == "Test"
        assert enriched["price_allocation"] == "$1,500"
        assert enriched["percentage"] == "15"
        assert "phase_number" not in enriched

    def test_defaults_without_document_keys(self):
        enriched = enrich_context("milestone_2_4_description", {})
        assert enriched["milestone_name"] == "Deploy"
        assert enriched["percentage"] == 20

    def test_does_not_mutate_shared_context(self, document):
        context = build_context(document)
        enrich_context("phase_1_description", context)
        assert "phase_number" not in context
