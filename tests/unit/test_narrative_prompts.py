"""Prompt catalog tests."""

from proposal_engine.layers.layer4_narrative.prompts import (
    PLACEHOLDER_TO_PROMPT,
    PROMPT_REGISTRY,
    OutputType,
    get_prompt,
    render_prompt,
)


class TestCatalog:
    def test_every_placeholder_maps_to_a_prompt(self):
        for prompt_id in PLACEHOLDER_TO_PROMPT.values():
            assert prompt_id in PROMPT_REGISTRY

    def test_get_prompt(self):
        definition = get_prompt("scope_in_items_v1")
        assert definition.output_type == OutputType.ARRAY_OF_STRINGS
        assert definition.output_constraints.max_items == 5
        assert get_prompt("missing_v1") is None


class TestRender:
    def test_render_value_proposition(self):
        text = render_prompt(
            get_prompt("value_proposition_v1"),
            {
                "client_name": "Acme Dental",
                "workflow_name": "Lead Intake",
                "bleed_amount": "$2,000",
                "total_price": "$8,700",
                "annual_recovery": "$24,000",
                "payback_display": "4.4 months",
            },
        )
        assert "Acme Dental" in text
        assert "loses $2,000 per month" in text
        assert "(payback 4.4 months)" in text

    def test_missing_keys_render_empty(self):
        text = render_prompt(get_prompt("value_proposition_v1"), {})
        assert "{{" not in text
        assert text.startswith("Write a one-sentence value proposition for .")
