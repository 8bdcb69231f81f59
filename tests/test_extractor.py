"""Tests for the field extractor."""

import pytest

from extraction import FieldExtractor, extract_fields
from contracts import ApplicationContext


@pytest.fixture
def extractor():
    return FieldExtractor()


class TestCompoundRecord:
    """Test the compound organization + call rule."""

    def test_organization_and_call_in_one_pass(self, extractor):
        message = (
            "Open Society Foundations: Impact for society under threat\n"
            "• Call-Identifikation: HORIZON-CL2-2025-DEMOCRACY-01"
        )
        result = extractor.extract(message, ApplicationContext())

        assert result.matched_rule == "compound"
        assert result.patch["organization_name"] == "Open Society Foundations"
        assert result.patch["call"] == "HORIZON-CL2-2025-DEMOCRACY-01"
        assert "project_title" not in result.patch

    def test_derives_program_and_template(self, extractor):
        message = "Open Society Foundations\nHORIZON-CL2-2025-DEMOCRACY-01"
        result = extractor.extract(message, ApplicationContext())
        assert result.patch["program_type"] == "HORIZON"
        assert result.patch["template_id"] == "he-ria-2025"

    def test_skips_fields_already_set(self, extractor):
        context = ApplicationContext(organization_name="Max Planck Institute")
        message = "Open Society Foundations\n- HORIZON-CL2-2025-DEMOCRACY-01"
        result = extractor.extract(message, context)
        assert "organization_name" not in result.patch
        assert result.patch["call"] == "HORIZON-CL2-2025-DEMOCRACY-01"


class TestLabelledFields:
    """Test "Label: value" lines."""

    def test_labelled_lines(self, extractor):
        message = "Organisation: Max Planck Institute\nProjekt: Sustainable Urban Mobility Platform"
        result = extractor.extract(message, ApplicationContext())

        assert result.matched_rule == "labelled"
        assert result.patch["organization_name"] == "Max Planck Institute"
        assert result.patch["project_title"] == "Sustainable Urban Mobility Platform"

    def test_english_labels(self, extractor):
        result = extractor.extract("Project title: AI-Enhanced Climate Monitoring", ApplicationContext())
        assert result.patch == {"project_title": "AI-Enhanced Climate Monitoring"}

    def test_rejected_label_is_reported(self, extractor):
        result = extractor.extract("Projekt: Shield\nOrganisation: Max Planck Institute", ApplicationContext())
        assert result.patch == {"organization_name": "Max Planck Institute"}
        assert "project_title" in result.rejected


class TestEmbeddedCall:
    """Test call identifiers embedded in prose."""

    def test_call_in_sentence(self, extractor):
        result = extractor.extract(
            "Wir bewerben uns auf CERV-2025-CITIZENS-01 im Herbst", ApplicationContext()
        )
        assert result.matched_rule == "embedded_call"
        assert result.patch["call"] == "CERV-2025-CITIZENS-01"
        assert result.patch["template_id"] == "cerv-democracy-2025"

    def test_existing_program_not_replaced(self, extractor):
        context = ApplicationContext(program_type="CERV", template_id="cerv-ukraine-2025")
        result = extractor.extract("HORIZON-CL2-2025-DEMOCRACY-01", context)
        assert result.patch == {"call": "HORIZON-CL2-2025-DEMOCRACY-01"}


class TestSequential:
    """Test the whole-message fallback."""

    def test_first_unset_field_wins(self, extractor):
        result = extractor.extract("Open Society Foundations", ApplicationContext())
        assert result.matched_rule == "sequential"
        assert result.patch == {"organization_name": "Open Society Foundations"}

    def test_title_after_organization(self, extractor):
        context = ApplicationContext(organization_name="Open Society Foundations")
        result = extractor.extract("Digital Democracy Shield", context)
        assert result.patch == {"project_title": "Digital Democracy Shield"}

    def test_generic_message_yields_nothing(self, extractor):
        result = extractor.extract("Legen wir los", ApplicationContext())
        assert result.is_empty
        assert set(result.rejected) == {"organization_name", "project_title", "call"}

    def test_invalid_call_rejected(self, extractor):
        context = ApplicationContext(
            organization_name="Open Society Foundations",
            project_title="Digital Democracy Shield",
        )
        result = extractor.extract("invalid call", context)
        assert result.is_empty
        assert "call" in result.rejected


def test_full_context_yields_nothing():
    context = ApplicationContext(
        organization_name="Open Society Foundations",
        project_title="Digital Democracy Shield",
        call="HORIZON-CL2-2025-DEMOCRACY-01",
    )
    assert extract_fields("Max Planck Institute", context).is_empty


def test_empty_message():
    assert extract_fields("   ").is_empty


def test_context_not_mutated(extractor):
    context = ApplicationContext()
    extractor.extract("Open Society Foundations", context)
    assert context.organization_name is None
