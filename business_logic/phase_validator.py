"""
Phase and within-platform budget validation.

PhaseBudgetValidator keeps campaign phase budgets summing to the monthly
budget; WithinPlatformBudgetValidator keeps each platform's campaign budgets
summing to that platform's monthly spend.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from models.data_models import (
    CampaignPhase,
    CampaignStructure,
    CampaignTemplate,
    PlatformStrategy,
    ValidationAdjustment,
)
from .allocation import (
    distribute_proportionally,
    format_money,
    is_finite_number,
    round_half_up,
    values_equal,
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass
class PhaseValidationResult:
    """Result of phase budget validation."""
    phases: List[CampaignPhase]
    adjustments: List[ValidationAdjustment] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class WithinPlatformValidationResult:
    """Result of within-platform budget validation."""
    campaign_structure: CampaignStructure
    adjustments: List[ValidationAdjustment] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class PhaseBudgetValidator:
    """
    Validates campaign phase budgets against the monthly budget and daily ceiling.

    Phase budgets are rescaled to sum exactly to the monthly budget. Phases
    whose implied daily spend exceeds the daily ceiling are only flagged.
    """

    def __init__(self, days_per_week: int = 7):
        self.days_per_week = days_per_week

    def validate(self,
                 phases: List[CampaignPhase],
                 monthly_budget: float,
                 daily_ceiling: float,
                 campaigns: Optional[List[CampaignTemplate]] = None) -> PhaseValidationResult:
        """
        Validate and fix phase budgets.

        Args:
            phases: Campaign phases in order
            monthly_budget: Effective total monthly budget
            daily_ceiling: Daily spend ceiling
            campaigns: Optional campaigns used to check phase references

        Returns:
            PhaseValidationResult with rescaled phases, adjustments and warnings
        """
        adjustments: List[ValidationAdjustment] = []
        warnings: List[str] = []

        if not phases:
            return PhaseValidationResult(phases=phases)

        fixed = self._rescale_budgets(phases, monthly_budget, adjustments, warnings)
        self._check_daily_spend(fixed, daily_ceiling, warnings)

        if campaigns is not None:
            self._check_campaign_references(fixed, campaigns, warnings)

        if adjustments:
            logger.info(f"Phase validation rescaled {len(adjustments)} phase budget(s)")

        return PhaseValidationResult(phases=fixed, adjustments=adjustments, warnings=warnings)

    def _rescale_budgets(self,
                         phases: List[CampaignPhase],
                         monthly_budget: float,
                         adjustments: List[ValidationAdjustment],
                         warnings: List[str]) -> List[CampaignPhase]:
        if not is_finite_number(monthly_budget) or monthly_budget <= 0:
            warnings.append(
                f"Monthly budget ({monthly_budget}) is not positive; phase budgets were not rescaled."
            )
            return phases

        target = round_half_up(monthly_budget)
        budgets = [p.estimated_budget if is_finite_number(p.estimated_budget) else 0 for p in phases]
        current_sum = sum(budgets)

        if values_equal(current_sum, target):
            return phases

        if current_sum <= 0:
            warnings.append(
                f"Campaign phases had no budget; {format_money(target)} split evenly across "
                f"{len(phases)} phase(s)."
            )

        new_budgets = distribute_proportionally(budgets, target)
        fixed = []
        for i, (phase, budget) in enumerate(zip(phases, new_budgets)):
            if values_equal(phase.estimated_budget, budget):
                fixed.append(phase)
                continue
            adjustments.append(ValidationAdjustment(
                field=f'campaignPhases[{i}].estimatedBudget',
                original_value=phase.estimated_budget,
                adjusted_value=budget,
                rule='Phase_BudgetSum',
                reason=(
                    f"Phase budgets summed to {format_money(current_sum)}, rescaled to the monthly "
                    f"budget {format_money(target)}."
                )
            ))
            fixed.append(replace(phase, estimated_budget=budget))

        return fixed

    def _check_daily_spend(self, phases: List[CampaignPhase], daily_ceiling: float, warnings: List[str]):
        for phase in phases:
            if not is_finite_number(phase.duration_weeks) or phase.duration_weeks <= 0:
                warnings.append(f'Phase "{phase.name}" has no duration; its daily spend cannot be checked.')
                continue
            if not is_finite_number(daily_ceiling) or daily_ceiling <= 0:
                continue

            daily_spend = phase.estimated_budget / (phase.duration_weeks * self.days_per_week)
            if daily_spend > daily_ceiling:
                warnings.append(
                    f'Phase "{phase.name}" implies {format_money(round(daily_spend, 2))}/day, above the daily '
                    f'ceiling of {format_money(daily_ceiling)}. Review phase budget or duration.'
                )

    def _check_campaign_references(self,
                                   phases: List[CampaignPhase],
                                   campaigns: List[CampaignTemplate],
                                   warnings: List[str]):
        known = {c.name.strip().lower() for c in campaigns}
        for phase in phases:
            for name in phase.campaigns:
                if name.strip().lower() not in known:
                    warnings.append(f'Phase "{phase.name}" references unknown campaign "{name}".')


class WithinPlatformBudgetValidator:
    """
    Validates that each platform's campaign budgets sum to the platform's monthly spend.
    """

    def validate(self,
                 campaign_structure: CampaignStructure,
                 platform_strategy: Optional[List[PlatformStrategy]] = None) -> WithinPlatformValidationResult:
        """
        Rescale campaign monthly budgets per platform.

        Args:
            campaign_structure: Campaign structure section
            platform_strategy: Platform strategy providing each platform's monthly spend

        Returns:
            WithinPlatformValidationResult with the fixed campaign structure
        """
        adjustments: List[ValidationAdjustment] = []
        warnings: List[str] = []

        if not platform_strategy:
            return WithinPlatformValidationResult(campaign_structure=campaign_structure)

        campaigns = list(campaign_structure.campaigns)
        by_platform: Dict[str, List[int]] = {}
        for i, campaign in enumerate(campaigns):
            by_platform.setdefault(campaign.platform.strip().lower(), []).append(i)

        for strategy in platform_strategy:
            indexes = by_platform.get(strategy.platform.strip().lower(), [])
            spend = strategy.monthly_spend if is_finite_number(strategy.monthly_spend) else 0

            if not indexes:
                if spend > 0:
                    warnings.append(
                        f'Platform "{strategy.platform}" has {format_money(spend)}/month but no campaigns.'
                    )
                continue

            target = round_half_up(spend)
            budgets = [campaigns[i].monthly_budget if is_finite_number(campaigns[i].monthly_budget) else 0
                       for i in indexes]
            current_sum = sum(budgets)
            if values_equal(current_sum, target):
                continue

            for i, budget in zip(indexes, distribute_proportionally(budgets, target)):
                if values_equal(campaigns[i].monthly_budget, budget):
                    continue
                adjustments.append(ValidationAdjustment(
                    field=f'campaignStructure.campaigns[{i}].monthlyBudget',
                    original_value=campaigns[i].monthly_budget,
                    adjusted_value=budget,
                    rule='WithinPlatform_BudgetSum',
                    reason=(
                        f"{strategy.platform} campaigns summed to {format_money(current_sum)}, rescaled to "
                        f"the platform spend {format_money(target)}."
                    )
                ))
                campaigns[i] = replace(campaigns[i], monthly_budget=budget)

        if not adjustments:
            return WithinPlatformValidationResult(campaign_structure=campaign_structure, warnings=warnings)

        logger.info(f"Within-platform validation rescaled {len(adjustments)} campaign budget(s)")
        return WithinPlatformValidationResult(
            campaign_structure=replace(campaign_structure, campaigns=campaigns),
            adjustments=adjustments,
            warnings=warnings
        )
