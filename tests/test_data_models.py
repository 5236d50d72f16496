"""
Tests for the media plan data models.
"""

import pytest

from data.sample_plans import sample_media_plan, sample_onboarding
from models.data_models import (
    MediaPlan,
    OnboardingFormData,
    PlanSection,
    ValidationAutoFix,
    ValidationCascadeResult,
    ValidatorCategory,
)


class TestMediaPlanSerialization:
    """Test conversion between camelCase JSON and the dataclasses."""

    def test_round_trip_is_lossless(self):
        data = sample_media_plan()

        assert MediaPlan.from_dict(data).to_dict() == data

    def test_unknown_keys_are_preserved(self):
        data = sample_media_plan()
        data['budgetAllocation']['seasonality'] = {'q4': 1.2}
        data['campaignPhases'][0]['owner'] = "Growth team"
        data['futureSection'] = [1, 2, 3]

        plan = MediaPlan.from_dict(data)

        assert plan.budget_allocation.extra == {'seasonality': {'q4': 1.2}}
        assert plan.campaign_phases[0].extra == {'owner': "Growth team"}
        assert plan.to_dict() == data

    def test_json_keys_that_are_not_camel_case(self):
        plan = MediaPlan.from_dict(sample_media_plan())
        model = plan.performance_model.cac_model

        assert model.target_cac == 750
        assert model.expected_monthly_sqls == 80
        assert plan.kpi_targets[0].kpi_type == "primary"
        assert plan.to_dict()['performanceModel']['cacModel']['expectedMonthlySQLs'] == 80

    def test_missing_sections_are_omitted(self):
        plan = MediaPlan.from_dict({'executiveSummary': {'overview': "Draft"}})

        assert plan.budget_allocation is None
        assert list(plan.to_dict()) == ['executiveSummary']

    def test_wrong_shape_raises_type_error(self):
        with pytest.raises(TypeError, match="totalMonthlyBudget"):
            MediaPlan.from_dict({'budgetAllocation': {'totalMonthlyBudget': "lots"}})

    def test_input_dict_is_not_shared(self):
        data = sample_media_plan()
        plan = MediaPlan.from_dict(data)

        data['budgetAllocation']['testingPhase']['budget'] = 1

        assert plan.budget_allocation.testing_phase['budget'] == 3000


class TestMediaPlanSnapshots:
    """Test copy-on-write section replacement."""

    def test_with_sections_shares_untouched_sections(self):
        plan = MediaPlan.from_dict(sample_media_plan())

        updated = plan.with_sections({PlanSection.KPI_TARGETS: [], 'campaignPhases': []})

        assert updated is not plan
        assert updated.kpi_targets == []
        assert updated.campaign_phases == []
        assert updated.budget_allocation is plan.budget_allocation
        assert plan.kpi_targets

    def test_with_sections_rejects_unknown_section(self):
        with pytest.raises(ValueError):
            MediaPlan().with_sections({'notASection': {}})

    def test_get_section(self):
        plan = MediaPlan.from_dict(sample_media_plan())

        assert plan.get_section("budgetAllocation") is plan.budget_allocation
        assert plan.get_section(PlanSection.CREATIVE_STRATEGY) == {'angles': ["Save 10 hours a week",
                                                                              "Client reporting on autopilot"]}


class TestOnboardingFormData:
    """Test onboarding parsing."""

    def test_from_dict(self):
        onboarding = OnboardingFormData.from_dict(sample_onboarding())

        assert onboarding.budget_targets.monthly_ad_budget == 15000
        assert onboarding.budget_targets.target_cpl == 75
        assert onboarding.budget_targets.daily_budget_ceiling is None
        assert onboarding.product_offer.pricing_model == ["monthly"]

    def test_defaults_when_empty(self):
        onboarding = OnboardingFormData.from_dict({})

        assert onboarding.budget_targets.monthly_ad_budget == 0
        assert onboarding.product_offer.pricing_tiers == []


class TestValidationCascadeResult:
    """Test cascade result helpers."""

    def test_apply_to_without_updates_returns_same_plan(self):
        plan = MediaPlan.from_dict(sample_media_plan())

        assert ValidationCascadeResult().apply_to(plan) is plan

    def test_to_dict(self):
        result = ValidationCascadeResult(
            auto_fixes=[ValidationAutoFix(
                validator=ValidatorCategory.BUDGET,
                field='budgetAllocation.dailyCeiling',
                old_value=500,
                new_value=666,
                rule='Budget_DailyCeiling',
                reason="Daily ceiling derived."
            )],
            warnings=["Check the budget."],
            validators_run=[ValidatorCategory.BUDGET]
        )

        data = result.to_dict()

        assert data['autoFixes'][0] == {
            'validator': "budget",
            'field': 'budgetAllocation.dailyCeiling',
            'oldValue': 500,
            'newValue': 666,
            'rule': 'Budget_DailyCeiling',
            'reason': "Daily ceiling derived.",
        }
        assert data['validatorsRun'] == ["budget"]
        assert data['updatedSections'] == {}
