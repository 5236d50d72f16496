"""
Tests for phase and within-platform budget validation.
"""

from dataclasses import replace

from business_logic.phase_validator import PhaseBudgetValidator, WithinPlatformBudgetValidator
from data.sample_plans import sample_media_plan
from models.data_models import CampaignPhase, MediaPlan, PlatformStrategy


class TestPhaseBudgetValidator:
    """Test cases for PhaseBudgetValidator."""

    def setup_method(self):
        """Set up test fixtures."""
        self.validator = PhaseBudgetValidator()
        self.plan = MediaPlan.from_dict(sample_media_plan())
        self.campaigns = self.plan.campaign_structure.campaigns

    def test_consistent_phases_untouched(self):
        result = self.validator.validate(self.plan.campaign_phases, 15000, 500, self.campaigns)

        assert result.phases is self.plan.campaign_phases
        assert result.adjustments == []
        assert result.warnings == []

    def test_phases_rescaled_to_new_budget(self):
        """5,000 + 10,000 rescaled to 20,000 keeps proportions; remainder goes to the larger phase."""
        result = self.validator.validate(self.plan.campaign_phases, 20000, 666, self.campaigns)

        budgets = [p.estimated_budget for p in result.phases]
        assert budgets == [6666, 13334]
        assert [a.field for a in result.adjustments] == [
            'campaignPhases[0].estimatedBudget',
            'campaignPhases[1].estimatedBudget',
        ]
        assert result.adjustments[0].rule == 'Phase_BudgetSum'
        assert result.phases[0].campaigns == self.plan.campaign_phases[0].campaigns

    def test_fractional_budget_rounds_half_up(self):
        result = self.validator.validate(self.plan.campaign_phases, 15000.5, 500)

        assert sum(p.estimated_budget for p in result.phases) == 15001

    def test_zero_budgets_split_evenly(self):
        phases = [replace(p, estimated_budget=0) for p in self.plan.campaign_phases]

        result = self.validator.validate(phases, 15000, 500)

        assert [p.estimated_budget for p in result.phases] == [7500, 7500]
        assert any("split evenly" in w for w in result.warnings)

    def test_non_positive_budget_not_rescaled(self):
        result = self.validator.validate(self.plan.campaign_phases, 0, 500)

        assert result.phases is self.plan.campaign_phases
        assert result.adjustments == []
        assert any("not positive" in w for w in result.warnings)

    def test_zero_duration_warns(self):
        phases = [replace(self.plan.campaign_phases[0], duration_weeks=0), self.plan.campaign_phases[1]]

        result = self.validator.validate(phases, 15000, 500)

        assert any('"Foundation" has no duration' in w for w in result.warnings)

    def test_daily_spend_above_ceiling_warns_only(self):
        """Phases spending faster than the ceiling are flagged, not changed."""
        result = self.validator.validate(self.plan.campaign_phases, 15000, 100)

        assert result.adjustments == []
        assert len([w for w in result.warnings if "above the daily ceiling" in w]) == 2

    def test_unknown_campaign_reference_warns(self):
        phases = [
            CampaignPhase(name="Launch", duration_weeks=4, estimated_budget=15000, campaigns=["LinkedIn ABM"])
        ]

        result = self.validator.validate(phases, 15000, 600, self.campaigns)

        assert result.warnings == ['Phase "Launch" references unknown campaign "LinkedIn ABM".']

    def test_empty_phases(self):
        result = self.validator.validate([], 15000, 500)

        assert result.phases == []
        assert result.warnings == []


class TestWithinPlatformBudgetValidator:
    """Test cases for WithinPlatformBudgetValidator."""

    def setup_method(self):
        """Set up test fixtures."""
        self.validator = WithinPlatformBudgetValidator()
        self.plan = MediaPlan.from_dict(sample_media_plan())

    def test_consistent_structure_untouched(self):
        result = self.validator.validate(self.plan.campaign_structure, self.plan.platform_strategy)

        assert result.campaign_structure is self.plan.campaign_structure
        assert result.adjustments == []

    def test_campaigns_follow_platform_spend(self):
        """Google campaigns 5,400 + 3,600 follow a new 12,000 platform spend."""
        strategy = [replace(self.plan.platform_strategy[0], monthly_spend=12000), self.plan.platform_strategy[1]]

        result = self.validator.validate(self.plan.campaign_structure, strategy)

        budgets = [c.monthly_budget for c in result.campaign_structure.campaigns]
        assert budgets == [7200, 4800, 3600, 2400]
        assert [a.field for a in result.adjustments] == [
            'campaignStructure.campaigns[0].monthlyBudget',
            'campaignStructure.campaigns[1].monthlyBudget',
        ]
        assert all(a.rule == 'WithinPlatform_BudgetSum' for a in result.adjustments)

    def test_platform_names_match_case_insensitively(self):
        strategy = [
            replace(self.plan.platform_strategy[0], platform=" google ads ", monthly_spend=10000),
            self.plan.platform_strategy[1],
        ]

        result = self.validator.validate(self.plan.campaign_structure, strategy)

        assert sum(c.monthly_budget for c in result.campaign_structure.campaigns[:2]) == 10000

    def test_platform_without_campaigns_warns(self):
        strategy = list(self.plan.platform_strategy) + [
            PlatformStrategy(platform="LinkedIn Ads", monthly_spend=1000)
        ]

        result = self.validator.validate(self.plan.campaign_structure, strategy)

        assert result.adjustments == []
        assert any('"LinkedIn Ads" has $1,000/month but no campaigns' in w for w in result.warnings)

    def test_no_platform_strategy_is_noop(self):
        result = self.validator.validate(self.plan.campaign_structure, None)

        assert result.campaign_structure is self.plan.campaign_structure

    def test_input_not_mutated(self):
        strategy = [replace(self.plan.platform_strategy[0], monthly_spend=12000), self.plan.platform_strategy[1]]

        self.validator.validate(self.plan.campaign_structure, strategy)

        assert self.plan.campaign_structure.campaigns[0].monthly_budget == 5400
