"""Tests for the workflow state machine."""

import pytest

from contracts import ApplicationContext, SectionProgress, SectionStatus, WorkflowStep
from orchestrator.workflow import WorkflowStateMachine, next_step, previous_step, step_index


FULL_CONTEXT = ApplicationContext(
    organization_name="Open Society Foundations",
    project_title="Digital Democracy Shield",
    call="HORIZON-CL2-2025-DEMOCRACY-01",
)


def complete(*steps):
    return {step.value: SectionProgress(status=SectionStatus.COMPLETE, completion_percentage=100) for step in steps}


@pytest.fixture
def machine():
    return WorkflowStateMachine()


class TestRequirements:
    """Test step requirements."""

    def test_grundlagen_lists_missing_fields(self, machine):
        context = ApplicationContext(organization_name="Open Society Foundations")
        requirements = machine.requirements(WorkflowStep.GRUNDLAGEN, context)
        assert not requirements.satisfied
        assert requirements.missing == ["project_title", "call"]
        assert requirements.completion_percentage == 33

    def test_invalid_value_counts_as_missing(self, machine):
        context = FULL_CONTEXT.model_copy(update={"call": "invalid call"})
        assert machine.requirements("Grundlagen", context).missing == ["call"]

    def test_section_step_needs_complete_section(self, machine):
        sections = {"Excellence": SectionProgress(status=SectionStatus.IN_PROGRESS, completion_percentage=60)}
        requirements = machine.requirements("Excellence", FULL_CONTEXT, sections)
        assert not requirements.satisfied
        assert requirements.completion_percentage == 60

        assert machine.requirements("Excellence", FULL_CONTEXT, complete(WorkflowStep.EXCELLENCE)).satisfied

    def test_terminal_step_has_no_requirement(self, machine):
        assert machine.requirements(WorkflowStep.UEBERPRUEFUNG, ApplicationContext()).satisfied


class TestTransitions:
    """Test transition checks."""

    def test_next_step_needs_requirements(self, machine):
        empty = ApplicationContext()
        assert not machine.can_advance("Grundlagen", "Excellence", empty)
        assert machine.can_advance("Grundlagen", "Excellence", FULL_CONTEXT)

    def test_rejection_has_reason(self, machine):
        result = machine.check_transition("Grundlagen", "Excellence", ApplicationContext())
        assert not result.allowed
        assert "organization_name" in result.reason

    def test_skipping_is_rejected(self, machine):
        sections = complete(WorkflowStep.EXCELLENCE, WorkflowStep.IMPACT)
        result = machine.check_transition("Grundlagen", "Impact", FULL_CONTEXT, sections)
        assert not result.allowed
        assert "skip" in result.reason

    @pytest.mark.parametrize("from_step,to_step", [
        ("Implementation", "Grundlagen"),
        ("Überprüfung", "Excellence"),
        ("Impact", "Impact"),
    ])
    def test_backward_and_same_step_allowed(self, machine, from_step, to_step):
        assert machine.check_transition(from_step, to_step, ApplicationContext()).allowed

    @pytest.mark.parametrize("from_step,to_step", [
        ("Excellence", "Grundlagen"),
        ("Grundlagen", "Grundlagen"),
        ("Überprüfung", "Überprüfung"),
    ])
    def test_backward_and_same_step_are_not_advancing(self, machine, from_step, to_step):
        sections = complete(WorkflowStep.EXCELLENCE)
        assert not machine.can_advance(from_step, to_step, FULL_CONTEXT, sections)

    def test_legacy_ids(self, machine):
        assert machine.can_advance("introduction", "excellence", FULL_CONTEXT)

    def test_unknown_step_raises(self, machine):
        with pytest.raises(ValueError):
            machine.check_transition("Grundlagen", "Budget", FULL_CONTEXT)


class TestCurrentStep:
    """Test current step evaluation."""

    def test_empty_context(self, machine):
        assert machine.current_step(ApplicationContext()) == WorkflowStep.GRUNDLAGEN

    def test_after_gating_fields(self, machine):
        assert machine.current_step(FULL_CONTEXT) == WorkflowStep.EXCELLENCE

    def test_all_sections_complete(self, machine):
        sections = complete(WorkflowStep.EXCELLENCE, WorkflowStep.IMPACT, WorkflowStep.IMPLEMENTATION)
        assert machine.current_step(FULL_CONTEXT, sections) == WorkflowStep.UEBERPRUEFUNG

    def test_overall_completion(self, machine):
        assert machine.overall_completion(ApplicationContext()) == 0
        assert machine.overall_completion(FULL_CONTEXT) == 25


def test_step_navigation():
    assert step_index("Impact") == 2
    assert next_step(WorkflowStep.GRUNDLAGEN) == WorkflowStep.EXCELLENCE
    assert next_step(WorkflowStep.UEBERPRUEFUNG) is None
    assert previous_step(WorkflowStep.GRUNDLAGEN) is None
    assert previous_step("review") == WorkflowStep.IMPLEMENTATION
