"""
Tests for budget allocation validation.
"""

import pytest

from business_logic.budget_validator import BudgetValidator
from models.data_models import BudgetAllocation, FunnelSplit, PlatformAllocation


def make_budget(percentages, total=15000, daily_ceiling=500, amounts=None):
    amounts = amounts or [round(p / 100 * total) for p in percentages]
    return BudgetAllocation(
        total_monthly_budget=total,
        daily_ceiling=daily_ceiling,
        platform_breakdown=[
            PlatformAllocation(platform=f"Platform {i + 1}", percentage=p, monthly_budget=a)
            for i, (p, a) in enumerate(zip(percentages, amounts))
        ],
        funnel_split=[
            FunnelSplit(stage="cold", percentage=60),
            FunnelSplit(stage="warm", percentage=25),
            FunnelSplit(stage="hot", percentage=15),
        ]
    )


class TestBudgetValidator:
    """Test cases for BudgetValidator."""

    def setup_method(self):
        """Set up test fixtures."""
        self.validator = BudgetValidator()

    def test_consistent_budget_is_untouched(self):
        """A consistent allocation produces no adjustments and is returned as-is."""
        budget = make_budget([60, 40])

        result = self.validator.validate_and_fix(budget, 15000)

        assert result.adjustments == []
        assert result.warnings == []
        assert result.budget is budget

    def test_percentages_rescaled_with_remainder_to_largest(self):
        """[50, 30, 10] sums to 90 and is rescaled to exactly 100."""
        budget = make_budget([50, 30, 10])

        result = self.validator.validate_and_fix(budget, 15000)

        percentages = [p.percentage for p in result.budget.platform_breakdown]
        assert percentages == [56, 33, 11]
        assert sum(percentages) == 100
        rules = [a.rule for a in result.adjustments]
        assert 'Budget_PlatformPctSum' in rules

    def test_amounts_follow_percentages(self):
        """Platform amounts are recomputed from the rescaled percentages."""
        budget = make_budget([50, 30, 10])

        result = self.validator.validate_and_fix(budget, 15000)

        amounts = [p.monthly_budget for p in result.budget.platform_breakdown]
        assert amounts == [8400, 4950, 1650]
        amount_fixes = [a for a in result.adjustments if a.rule == 'Budget_PlatformAmountRecalc']
        assert amount_fixes[0].field == 'budgetAllocation.platformBreakdown[0].monthlyBudget'

    def test_single_platform_gets_everything(self):
        budget = make_budget([70], amounts=[10500])

        result = self.validator.validate_and_fix(budget, 15000)

        platform = result.budget.platform_breakdown[0]
        assert platform.percentage == 100
        assert platform.monthly_budget == 15000

    def test_no_platforms_warns(self):
        """Zero platforms is a no-op on the breakdown plus a warning."""
        budget = BudgetAllocation(total_monthly_budget=15000, daily_ceiling=500)

        result = self.validator.validate_and_fix(budget, 15000)

        assert result.budget.platform_breakdown == []
        assert any("no platforms" in w for w in result.warnings)

    def test_daily_ceiling_derived_from_total(self):
        """The daily ceiling is floor(total / 30)."""
        budget = make_budget([60, 40], total=20000, daily_ceiling=500)

        result = self.validator.validate_and_fix(budget, 20000)

        assert result.budget.daily_ceiling == 666
        fix = next(a for a in result.adjustments if a.field == 'budgetAllocation.dailyCeiling')
        assert fix.original_value == 500
        assert fix.adjusted_value == 666

    def test_daily_ceiling_override(self):
        """An explicit override replaces the derived ceiling."""
        budget = make_budget([60, 40])

        result = self.validator.validate_and_fix(budget, 15000, daily_ceiling_override=400)

        assert result.budget.daily_ceiling == 400
        assert result.warnings == []

    def test_daily_ceiling_override_above_derived_warns(self):
        budget = make_budget([60, 40], daily_ceiling=600)

        result = self.validator.validate_and_fix(budget, 15000, daily_ceiling_override=600)

        assert result.budget.daily_ceiling == 600
        assert any("exceeds" in w for w in result.warnings)

    def test_budget_drift_warns_but_keeps_plan_value(self):
        """A plan total far from onboarding is kept and flagged."""
        budget = make_budget([60, 40], total=20000, daily_ceiling=666)

        result = self.validator.validate_and_fix(budget, 15000)

        assert result.budget.total_monthly_budget == 20000
        assert any("differs" in w for w in result.warnings)

    def test_non_positive_total_falls_back_to_onboarding(self):
        budget = make_budget([60, 40], total=0, amounts=[0, 0], daily_ceiling=0)

        result = self.validator.validate_and_fix(budget, 15000)

        assert result.budget.total_monthly_budget == 15000
        assert [p.monthly_budget for p in result.budget.platform_breakdown] == [9000, 6000]
        assert result.budget.daily_ceiling == 500
        assert result.adjustments[0].rule == 'Budget_TotalGuard'

    def test_funnel_split_normalized(self):
        budget = make_budget([60, 40])
        budget.funnel_split[2].percentage = 5

        result = self.validator.validate_and_fix(budget, 15000)

        assert sum(f.percentage for f in result.budget.funnel_split) == 100
        assert any(a.rule == 'Budget_FunnelPctSum' for a in result.adjustments)

    def test_input_not_mutated(self):
        """Validation returns a new section and leaves the input alone."""
        budget = make_budget([50, 30, 10])

        self.validator.validate_and_fix(budget, 15000)

        assert [p.percentage for p in budget.platform_breakdown] == [50, 30, 10]

    @pytest.mark.parametrize("percentages", [
        [10, 10, 10],
        [33.3, 33.3, 33.3],
        [80, 30],
        [0, 0, 0, 0],
        [99.5, 0.4],
    ])
    def test_sum_invariant(self, percentages):
        """After validation the platform percentages sum to exactly 100."""
        result = self.validator.validate_and_fix(make_budget(percentages), 15000)

        assert sum(p.percentage for p in result.budget.platform_breakdown) == 100
