"""
Tests for the media plan controller.
"""

import pandas as pd

from business_logic.media_plan_controller import AUDIT_COLUMNS, MediaPlanController, affected_sections
from config.settings import CascadeConfig
from data.sample_plans import sample_media_plan, sample_onboarding
from models.data_models import MediaPlan, PlanSection, ValidationCascadeResult


class TestMediaPlanController:
    """Test cases for MediaPlanController."""

    def setup_method(self):
        """Set up test fixtures."""
        self.controller = MediaPlanController(CascadeConfig())
        self.plan = sample_media_plan()
        self.onboarding = sample_onboarding()

    def test_propose_edit(self):
        proposal = self.controller.propose_edit(
            self.plan, "budgetAllocation", "totalMonthlyBudget", 20000, "Client approved more spend"
        )

        assert proposal['oldValue'] == 15000
        assert proposal['diffPreview'] == "- Old: 15000\n+ New: 20000"
        assert proposal['affectedValidators'] == [
            "budget", "cacModel", "kpiTargets", "crossSection", "phaseBudgets", "staleReferences"
        ]
        assert proposal['requiresValidationCascade'] is True
        assert proposal['explanation'] == "Client approved more spend"
        assert self.plan['budgetAllocation']['totalMonthlyBudget'] == 15000

    def test_propose_rejected_edit_returns_guidance(self):
        proposal = self.controller.propose_edit(self.plan, "budgetAllocation", "platformBreakdown", 5000)

        assert "is an array with 2 items" in proposal['error']
        assert "platformBreakdown[0]" in proposal['guidance']
        assert proposal['requiresValidationCascade'] is False
        assert 'diffPreview' not in proposal

    def test_apply_edit_runs_cascade(self):
        success, new_plan, result, message, notification = self.controller.apply_edit(
            self.plan, self.onboarding, "budgetAllocation", "totalMonthlyBudget", 20000
        )

        assert success
        assert isinstance(new_plan, MediaPlan)
        assert new_plan.budget_allocation.total_monthly_budget == 20000
        assert new_plan.budget_allocation.daily_ceiling == 666
        assert new_plan.performance_model.cac_model.expected_monthly_leads == 266
        assert new_plan.executive_summary.recommended_monthly_budget == 20000
        assert message.startswith("Updated budgetAllocation.totalMonthlyBudget. Ran 6 validators. Applied ")
        assert message.endswith("1 warning(s).")
        assert notification['type'] == 'warning'
        assert any("differs" in w for w in notification['warnings'])

    def test_apply_edit_leaves_input_alone(self):
        model = MediaPlan.from_dict(self.plan)

        success, new_plan, _, _, _ = self.controller.apply_edit(
            model, self.onboarding, "platformStrategy", "[0].priority", "testing"
        )

        assert success
        assert model.platform_strategy[0].priority == "primary"
        assert new_plan.platform_strategy[0].priority == "testing"

    def test_apply_rejected_edit(self):
        success, new_plan, result, message, notification = self.controller.apply_edit(
            self.plan, self.onboarding, "budgetAllocation", "totalMonthlyBudget", "$20,000"
        )

        assert not success
        assert new_plan is None
        assert result is None
        assert "Type mismatch" in message
        assert notification['title'] == "Edit Rejected"
        assert notification['action'] == "Pass a plain number without currency symbols or units."

    def test_apply_malformed_path(self):
        success, _, _, _, notification = self.controller.apply_edit(
            self.plan, self.onboarding, "budgetAllocation", "platformBreakdown[", 1
        )

        assert not success
        assert notification['title'] == "Input Error"

    def test_apply_to_malformed_plan(self):
        success, _, _, message, notification = self.controller.apply_edit(
            {'budgetAllocation': "not an object"}, self.onboarding, "budgetAllocation", "dailyCeiling", 1
        )

        assert not success
        assert notification['title'] == "Data Error"
        assert 'technical_details' in notification

    def test_recalculate_consistent_plan(self):
        success, result, message, notification = self.controller.recalculate(
            self.plan, self.onboarding, "budgetAllocation"
        )

        assert success
        assert result.auto_fixes == []
        assert message == "All sections are consistent. No fixes needed."
        assert notification is None

    def test_recalculate_with_fixes(self):
        self.plan['budgetAllocation']['totalMonthlyBudget'] = 20000
        self.onboarding['budgetTargets']['monthlyAdBudget'] = 20000

        success, result, message, notification = self.controller.recalculate(
            self.plan, self.onboarding, "budgetAllocation", "totalMonthlyBudget"
        )

        assert success
        assert result.warnings == []
        assert message == f"Ran 6 validators. Applied {len(result.auto_fixes)} auto-fix(es)."
        assert notification is None

    def test_recalculate_with_warnings_only(self):
        self.plan['executiveSummary']['timelineToResults'] = "6 months"

        success, result, message, notification = self.controller.recalculate(
            self.plan, self.onboarding, "executiveSummary"
        )

        assert success
        assert message == "No auto-fixes needed but 1 warning(s) found."
        assert notification['type'] == 'warning'

    def test_recalculate_malformed_plan_returns_error(self):
        success, result, message, notification = self.controller.recalculate(
            {'budgetAllocation': {'platformBreakdown': 5}}, self.onboarding, "budgetAllocation"
        )

        assert not success
        assert result.auto_fixes == []
        assert result.validators_run == []
        assert message == "The media plan or onboarding data does not have the expected shape."
        assert notification['title'] == "Data Error"
        assert "platformBreakdown" in notification['technical_details']

    def test_simulate_budget_change(self):
        success, simulation, message, notification = self.controller.simulate_budget_change(
            self.plan, self.onboarding, 30000
        )

        assert success
        assert notification is None
        assert simulation.proposed.expected_monthly_leads == 400
        assert simulation.current.expected_monthly_leads == 200
        assert message == "At $30,000/month: 400 leads (+200), 40 customers (+20), CAC $750."

    def test_simulate_rejects_non_positive_budget(self):
        success, simulation, message, notification = self.controller.simulate_budget_change(
            self.plan, self.onboarding, 0
        )

        assert not success
        assert simulation is None
        assert notification['title'] == "Validation Error"

    def test_simulate_without_performance_model(self):
        del self.plan['performanceModel']

        success, _, message, _ = self.controller.simulate_budget_change(self.plan, self.onboarding, 20000)

        assert not success
        assert message == "This media plan has no performance model to simulate."

    def test_summarize_media_plan(self):
        summary = self.controller.summarize_media_plan(self.plan)

        assert summary.startswith("## Executive Summary")
        assert "- Monthly Budget: $15,000" in summary
        assert "Google Ads (60%, $9,000/mo, primary)" in summary
        assert "- Target CAC: $750" in summary
        assert "Cost per Lead (CPL): $75" in summary

    def test_summarize_skips_missing_sections(self):
        summary = self.controller.summarize_media_plan({'budgetAllocation': self.plan['budgetAllocation']})

        assert summary == "## Budget Allocation\n- Total Monthly: $15,000\n- Daily Ceiling: $500"

    def test_summarize_malformed_plan_returns_error_message(self):
        summary = self.controller.summarize_media_plan({'kpiTargets': "oops"})

        assert summary == "The media plan or onboarding data does not have the expected shape."

    def test_auto_fix_table(self):
        _, _, result, _, _ = self.controller.apply_edit(
            self.plan, self.onboarding, "budgetAllocation", "totalMonthlyBudget", 20000
        )

        table = self.controller.get_auto_fix_table(result)

        assert isinstance(table, pd.DataFrame)
        assert list(table.columns) == AUDIT_COLUMNS
        assert len(table) == len(result.auto_fixes)
        assert table.iloc[0]['validator'] == "budget"

    def test_empty_auto_fix_table(self):
        table = self.controller.get_auto_fix_table(ValidationCascadeResult())

        assert table.empty
        assert list(table.columns) == AUDIT_COLUMNS

    def test_affected_sections_in_plan_order(self):
        _, _, result, _, _ = self.controller.apply_edit(
            self.plan, self.onboarding, "budgetAllocation", "totalMonthlyBudget", 20000
        )

        sections = affected_sections(result)

        assert sections[0] == PlanSection.EXECUTIVE_SUMMARY
        assert PlanSection.BUDGET_ALLOCATION in sections
        assert PlanSection.CAMPAIGN_STRUCTURE not in sections
