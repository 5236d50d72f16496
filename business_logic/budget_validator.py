"""
Budget allocation validation and repair for media plans.

This module keeps the budgetAllocation section arithmetically consistent:
platform percentages sum to 100, platform amounts follow from the
percentages, the funnel split sums to 100 and the daily ceiling follows
from the monthly budget.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional

from models.data_models import BudgetAllocation, ValidationAdjustment
from .allocation import (
    distribute_proportionally,
    floor_safe,
    format_money,
    is_finite_number,
    round_half_up,
    values_equal,
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass
class BudgetValidationResult:
    """Result of budget validation."""
    budget: BudgetAllocation
    adjustments: List[ValidationAdjustment] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class BudgetValidator:
    """
    Validates and fixes the budget allocation section.

    Percentages are redistributed proportionally to each platform's current
    share; integer rounding remainders go to the platform with the largest
    allocation so the sum is exactly 100.
    """

    def __init__(self, budget_drift_tolerance: float = 0.10, days_per_month: int = 30):
        """
        Initialize the budget validator.

        Args:
            budget_drift_tolerance: Relative plan/onboarding budget difference before warning
            days_per_month: Divisor used to derive the daily ceiling
        """
        self.budget_drift_tolerance = budget_drift_tolerance
        self.days_per_month = days_per_month
        # Float sums such as 33.3 + 33.3 + 33.4 must count as exactly 100
        self.percentage_epsilon = 1e-9

    def validate_and_fix(self,
                         budget: BudgetAllocation,
                         monthly_budget: float,
                         daily_ceiling_override: Optional[float] = None) -> BudgetValidationResult:
        """
        Validate and fix budget allocation math.

        Args:
            budget: Current budget allocation section
            monthly_budget: Monthly ad budget from onboarding
            daily_ceiling_override: Explicit daily ceiling, if the client set one

        Returns:
            BudgetValidationResult with the fixed section, adjustments and warnings
        """
        adjustments: List[ValidationAdjustment] = []
        warnings: List[str] = []

        fixed = self._fix_total_budget(budget, monthly_budget, adjustments, warnings)
        total = fixed.total_monthly_budget

        if not fixed.platform_breakdown:
            warnings.append("Budget allocation has no platforms; platform percentages were not validated.")
        else:
            fixed = self._fix_platform_percentages(fixed, adjustments)
            fixed = self._recalculate_platform_amounts(fixed, total, adjustments)

        if fixed.funnel_split:
            fixed = self._fix_funnel_split(fixed, adjustments)

        fixed = self._fix_daily_ceiling(fixed, daily_ceiling_override, adjustments, warnings)

        if adjustments:
            logger.info(f"Budget validation applied {len(adjustments)} adjustment(s)")

        return BudgetValidationResult(budget=fixed, adjustments=adjustments, warnings=warnings)

    def _fix_total_budget(self,
                          budget: BudgetAllocation,
                          monthly_budget: float,
                          adjustments: List[ValidationAdjustment],
                          warnings: List[str]) -> BudgetAllocation:
        """Guard the total budget and compare it with the onboarding budget."""
        total = budget.total_monthly_budget
        onboarding_budget = monthly_budget if is_finite_number(monthly_budget) and monthly_budget > 0 else 0

        if not is_finite_number(total) or total <= 0:
            replacement = onboarding_budget
            if replacement <= 0:
                warnings.append(
                    f"Total monthly budget ({total}) is not positive and no onboarding budget is available; "
                    f"clamped to $0."
                )
            adjustments.append(ValidationAdjustment(
                field='budgetAllocation.totalMonthlyBudget',
                original_value=total if is_finite_number(total) else str(total),
                adjusted_value=replacement,
                rule='Budget_TotalGuard',
                reason=f"Total monthly budget must be positive; using {format_money(replacement)}."
            ))
            return replace(budget, total_monthly_budget=replacement)

        if onboarding_budget > 0:
            drift = abs(total - onboarding_budget) / onboarding_budget
            if drift > self.budget_drift_tolerance:
                warnings.append(
                    f"Total monthly budget {format_money(total)} differs {drift:.1%} from the onboarding "
                    f"budget {format_money(onboarding_budget)}. Confirm the new budget with the client."
                )

        return budget

    def _fix_platform_percentages(self,
                                  budget: BudgetAllocation,
                                  adjustments: List[ValidationAdjustment]) -> BudgetAllocation:
        """Make platform percentages sum to exactly 100."""
        breakdown = budget.platform_breakdown
        percentages = [p.percentage if is_finite_number(p.percentage) else 0 for p in breakdown]
        pct_sum = sum(percentages)

        if len(breakdown) == 1:
            if values_equal(percentages[0], 100, self.percentage_epsilon):
                return budget
            new_percentages = [100]
            reason = f"Single platform {breakdown[0].platform} receives 100% of the budget."
        else:
            if abs(pct_sum - 100) <= self.percentage_epsilon:
                return budget
            new_percentages = distribute_proportionally(percentages, 100)
            reason = f"Platform percentages summed to {pct_sum:g}%, proportionally scaled to 100%."
            if pct_sum <= 0:
                reason = "Platform percentages were all zero; split evenly to 100%."

        adjustments.append(ValidationAdjustment(
            field='budgetAllocation.platformBreakdown.percentage',
            original_value=pct_sum,
            adjusted_value=100,
            rule='Budget_PlatformPctSum',
            reason=reason
        ))

        new_breakdown = [
            replace(platform, percentage=pct)
            for platform, pct in zip(breakdown, new_percentages)
        ]
        return replace(budget, platform_breakdown=new_breakdown)

    def _recalculate_platform_amounts(self,
                                      budget: BudgetAllocation,
                                      total: float,
                                      adjustments: List[ValidationAdjustment]) -> BudgetAllocation:
        """Recompute amount = round(percentage / 100 * total) for each platform."""
        new_breakdown = []
        changed = False

        for i, platform in enumerate(budget.platform_breakdown):
            amount = round_half_up(platform.percentage / 100 * total)
            if not is_finite_number(platform.monthly_budget) or not values_equal(platform.monthly_budget, amount):
                adjustments.append(ValidationAdjustment(
                    field=f'budgetAllocation.platformBreakdown[{i}].monthlyBudget',
                    original_value=platform.monthly_budget,
                    adjusted_value=amount,
                    rule='Budget_PlatformAmountRecalc',
                    reason=(
                        f"{platform.platform} amount recalculated as {platform.percentage:g}% of "
                        f"{format_money(total)}."
                    )
                ))
                platform = replace(platform, monthly_budget=amount)
                changed = True
            new_breakdown.append(platform)

        if not changed:
            return budget
        return replace(budget, platform_breakdown=new_breakdown)

    def _fix_funnel_split(self,
                          budget: BudgetAllocation,
                          adjustments: List[ValidationAdjustment]) -> BudgetAllocation:
        """Make funnel split percentages sum to exactly 100."""
        percentages = [f.percentage if is_finite_number(f.percentage) else 0 for f in budget.funnel_split]
        pct_sum = sum(percentages)

        if abs(pct_sum - 100) <= self.percentage_epsilon:
            return budget

        new_percentages = distribute_proportionally(percentages, 100)
        adjustments.append(ValidationAdjustment(
            field='budgetAllocation.funnelSplit.percentage',
            original_value=pct_sum,
            adjusted_value=100,
            rule='Budget_FunnelPctSum',
            reason=f"Funnel split summed to {pct_sum:g}%, proportionally scaled to 100%."
        ))

        new_split = [replace(stage, percentage=pct) for stage, pct in zip(budget.funnel_split, new_percentages)]
        return replace(budget, funnel_split=new_split)

    def _fix_daily_ceiling(self,
                           budget: BudgetAllocation,
                           daily_ceiling_override: Optional[float],
                           adjustments: List[ValidationAdjustment],
                           warnings: List[str]) -> BudgetAllocation:
        """Derive the daily ceiling from the total unless explicitly overridden."""
        derived = floor_safe(budget.total_monthly_budget / self.days_per_month)

        if is_finite_number(daily_ceiling_override) and daily_ceiling_override > 0:
            expected = daily_ceiling_override
            if daily_ceiling_override > derived:
                warnings.append(
                    f"Daily ceiling override {format_money(daily_ceiling_override)} exceeds "
                    f"{format_money(derived)} (monthly budget / {self.days_per_month})."
                )
            rule = 'Budget_DailyCeilingOverride'
            reason = f"Daily ceiling set to the client override {format_money(expected)}."
        else:
            expected = derived
            rule = 'Budget_DailyCeiling'
            reason = (
                f"Daily ceiling derived as floor({format_money(budget.total_monthly_budget)} / "
                f"{self.days_per_month}) = {format_money(expected)}."
            )

        if is_finite_number(budget.daily_ceiling) and values_equal(budget.daily_ceiling, expected):
            return budget

        adjustments.append(ValidationAdjustment(
            field='budgetAllocation.dailyCeiling',
            original_value=budget.daily_ceiling,
            adjusted_value=expected,
            rule=rule,
            reason=reason
        ))
        return replace(budget, daily_ceiling=expected)
