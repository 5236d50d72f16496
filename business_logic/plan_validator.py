"""
Cross-section consistency validation for media plans.

This module checks that platform strategy, ICP targeting, campaign structure,
budget allocation and KPI targets agree with each other. Mechanical
mismatches are repaired; anything that needs judgement becomes a warning.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional

from models.data_models import (
    BudgetAllocation,
    CampaignStructure,
    ICPTargeting,
    KPITarget,
    PerformanceModel,
    PlatformStrategy,
    ValidationAdjustment,
)
from .allocation import distribute_proportionally, floor_safe, format_money, values_equal
from .kpi_reconciler import classify_metric, parse_target_value

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass
class CrossSectionValidationResult:
    """Result of cross-section validation."""
    valid: bool
    adjustments: List[ValidationAdjustment] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    platform_strategy: Optional[List[PlatformStrategy]] = None
    campaign_structure: Optional[CampaignStructure] = None


class CrossSectionValidator:
    """
    Validates mutual consistency of the media plan sections.

    Rules:
    1. platformStrategy budget share and spend follow budgetAllocation.platformBreakdown
    2. A primary platform should not hold the smallest budget share
    3. Campaign and ICP platform references exist in platformStrategy
    4. Campaign daily budgets fit under the daily ceiling (proportional scale-down)
    5. KPI CPL/CAC targets agree with the performance model
    """

    def __init__(self, daily_budget_tolerance: float = 0.10, kpi_tolerance: float = 0.20):
        """
        Initialize the cross-section validator.

        Args:
            daily_budget_tolerance: Allowed overshoot of campaign daily budgets over the ceiling
            kpi_tolerance: Allowed KPI vs model deviation before warning
        """
        self.daily_budget_tolerance = daily_budget_tolerance
        self.kpi_tolerance = kpi_tolerance

    def validate(self,
                 platform_strategy: List[PlatformStrategy],
                 budget_allocation: BudgetAllocation,
                 icp_targeting: Optional[ICPTargeting] = None,
                 campaign_structure: Optional[CampaignStructure] = None,
                 kpi_targets: Optional[List[KPITarget]] = None,
                 performance_model: Optional[PerformanceModel] = None) -> CrossSectionValidationResult:
        """
        Validate consistency across completed media plan sections.

        Args:
            platform_strategy: Per-platform strategy entries
            budget_allocation: Budget allocation section
            icp_targeting: Optional ICP targeting section
            campaign_structure: Optional campaign structure section
            kpi_targets: Optional KPI targets
            performance_model: Optional performance model

        Returns:
            CrossSectionValidationResult with replacement sections where fixes apply
        """
        adjustments: List[ValidationAdjustment] = []
        warnings: List[str] = []

        synced_strategy = self._sync_platform_strategy(platform_strategy, budget_allocation, adjustments, warnings)
        self._check_priority_vs_share(synced_strategy, warnings)

        valid_platforms = {p.platform.strip().lower() for p in synced_strategy}
        fixed_structure = None

        if campaign_structure is not None:
            self._check_campaign_platforms(campaign_structure, valid_platforms, warnings)
            fixed_structure = self._fit_daily_budgets(
                campaign_structure, budget_allocation.daily_ceiling, adjustments, warnings
            )

        if icp_targeting is not None:
            self._check_icp_platforms(icp_targeting, valid_platforms, warnings)

        if kpi_targets and performance_model is not None:
            self._check_kpis_against_model(kpi_targets, performance_model, warnings)

        if warnings:
            logger.info(f"Cross-section validation found {len(warnings)} issue(s)")

        return CrossSectionValidationResult(
            valid=not warnings,
            adjustments=adjustments,
            warnings=warnings,
            platform_strategy=synced_strategy if synced_strategy is not platform_strategy else None,
            campaign_structure=fixed_structure
        )

    def _sync_platform_strategy(self,
                                platform_strategy: List[PlatformStrategy],
                                budget_allocation: BudgetAllocation,
                                adjustments: List[ValidationAdjustment],
                                warnings: List[str]) -> List[PlatformStrategy]:
        """Copy share and amount from the budget breakdown into the strategy entries."""
        breakdown = {p.platform.strip().lower(): p for p in budget_allocation.platform_breakdown}
        strategy_names = {p.platform.strip().lower() for p in platform_strategy}
        synced = []
        changed = False

        for i, strategy in enumerate(platform_strategy):
            allocation = breakdown.get(strategy.platform.strip().lower())
            if allocation is None:
                warnings.append(
                    f'Platform "{strategy.platform}" is in platformStrategy but has no budget allocation.'
                )
                synced.append(strategy)
                continue

            if (values_equal(strategy.budget_percentage, allocation.percentage)
                    and values_equal(strategy.monthly_spend, allocation.monthly_budget)):
                synced.append(strategy)
                continue

            adjustments.append(ValidationAdjustment(
                field=f'platformStrategy[{i}]',
                original_value=f"{strategy.budget_percentage:g}% / {format_money(strategy.monthly_spend)}",
                adjusted_value=f"{allocation.percentage:g}% / {format_money(allocation.monthly_budget)}",
                rule='CrossSection_PlatformSync',
                reason=f"{strategy.platform} share and spend synced with budgetAllocation.platformBreakdown."
            ))
            synced.append(replace(
                strategy,
                budget_percentage=allocation.percentage,
                monthly_spend=allocation.monthly_budget
            ))
            changed = True

        for allocation in budget_allocation.platform_breakdown:
            if allocation.platform.strip().lower() not in strategy_names:
                warnings.append(
                    f'Budget allocation funds platform "{allocation.platform}" which is not in platformStrategy.'
                )

        return synced if changed else platform_strategy

    def _check_priority_vs_share(self, platform_strategy: List[PlatformStrategy], warnings: List[str]):
        if len(platform_strategy) < 2:
            return

        shares = [p.budget_percentage for p in platform_strategy]
        smallest, largest = min(shares), max(shares)
        if smallest == largest:
            return

        for strategy in platform_strategy:
            priority = (strategy.priority or '').lower()
            if priority == 'primary' and strategy.budget_percentage == smallest:
                warnings.append(
                    f'Platform "{strategy.platform}" is marked primary but has the smallest budget share '
                    f'({strategy.budget_percentage:g}%). Review priority or allocation.'
                )
            elif priority == 'testing' and strategy.budget_percentage == largest:
                warnings.append(
                    f'Platform "{strategy.platform}" is marked testing but has the largest budget share '
                    f'({strategy.budget_percentage:g}%). Review priority or allocation.'
                )

    def _check_campaign_platforms(self,
                                  campaign_structure: CampaignStructure,
                                  valid_platforms: set,
                                  warnings: List[str]):
        reported = set()
        for campaign in campaign_structure.campaigns:
            platform = campaign.platform.strip().lower()
            if platform not in valid_platforms and platform not in reported:
                reported.add(platform)
                warnings.append(f'Campaign "{campaign.name}" references platform "{campaign.platform}" '
                                f'not in platformStrategy.')

    def _check_icp_platforms(self, icp_targeting: ICPTargeting, valid_platforms: set, warnings: List[str]):
        for targeting in icp_targeting.platform_targeting:
            if targeting.platform.strip().lower() not in valid_platforms:
                warnings.append(f'ICP targeting references platform "{targeting.platform}" not in platformStrategy.')

    def _fit_daily_budgets(self,
                           campaign_structure: CampaignStructure,
                           daily_ceiling: float,
                           adjustments: List[ValidationAdjustment],
                           warnings: List[str]) -> Optional[CampaignStructure]:
        """Scale campaign daily budgets down when they overshoot the daily ceiling."""
        campaigns = campaign_structure.campaigns
        total_daily = sum(c.daily_budget for c in campaigns)

        if daily_ceiling <= 0 or total_daily <= daily_ceiling * (1 + self.daily_budget_tolerance):
            return None

        scaled = distribute_proportionally([c.daily_budget for c in campaigns], floor_safe(daily_ceiling))
        overshoot = total_daily / daily_ceiling - 1

        warnings.append(
            f"Campaign daily budgets summed to {format_money(total_daily)}, exceeding the daily ceiling of "
            f"{format_money(daily_ceiling)}; scaled down proportionally."
        )
        adjustments.append(ValidationAdjustment(
            field='campaignStructure.campaigns.dailyBudget',
            original_value=total_daily,
            adjusted_value=sum(scaled),
            rule='CrossSection_DailyBudgetScale',
            reason=(
                f"Campaign daily budgets exceeded the ceiling {format_money(daily_ceiling)} by {overshoot:.1%}. "
                f"Proportionally scaled by factor {daily_ceiling / total_daily:.3f}."
            )
        ))

        return replace(
            campaign_structure,
            campaigns=[replace(c, daily_budget=budget) for c, budget in zip(campaigns, scaled)]
        )

    def _check_kpis_against_model(self,
                                  kpi_targets: List[KPITarget],
                                  performance_model: PerformanceModel,
                                  warnings: List[str]):
        model = performance_model.cac_model
        model_values = {'cpl': model.target_cpl, 'cac': model.target_cac}

        for kpi in kpi_targets:
            kind = classify_metric(kpi.metric)
            if kind not in model_values or model_values[kind] is None:
                continue
            parsed = parse_target_value(kpi.target)
            if parsed is None:
                continue

            stated = parsed[0]
            expected = model_values[kind]
            if expected > 0 and abs(stated - expected) > expected * self.kpi_tolerance:
                warnings.append(
                    f"KPI {kind.upper()} target ({format_money(stated)}) differs more than "
                    f"{self.kpi_tolerance:.0%} from the performance model ({format_money(expected)})."
                )
