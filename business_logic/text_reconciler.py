"""
Free-text reconciliation for media plans.

TimelineReconciler compares phase durations with the stated timeline and only
warns. StaleReferenceSweeper rewrites numbers in a narrow set of prose fields
that still quote derived figures from before the cascade.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple

from models.data_models import CampaignPhase, MediaPlan, ValidationAdjustment
from .allocation import format_amount, is_finite_number, values_equal

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_TIMELINE = re.compile(
    r'(\d+(?:\.\d+)?)(?:\s*(?:-|–|to)\s*(\d+(?:\.\d+)?))?\s*(days?|weeks?|months?)\b',
    re.IGNORECASE
)
_MONEY = re.compile(r'\$\s?(\d[\d,]*(?:\.\d+)?)(\s?[kK]\b)?')
_COUNT = re.compile(r'(?<![\w$.,])(\d[\d,]*)(\s+)(leads?|sqls?|customers?)\b', re.IGNORECASE)

WEEKS_PER_UNIT = {
    'day': 1 / 7,
    'week': 1.0,
    'month': 52 / 12,
}


def parse_timeline_weeks(text: str) -> Optional[Tuple[float, float]]:
    """
    Parse a timeline such as "8-12 weeks", "60 to 90 days" or "3 months".

    Args:
        text: Free-text timeline

    Returns:
        (low, high) in weeks, or None when no duration is found
    """
    match = _TIMELINE.search(text or '')
    if not match:
        return None

    low = float(match.group(1))
    high = float(match.group(2)) if match.group(2) else low
    if high < low:
        low, high = high, low

    unit = match.group(3).lower().rstrip('s')
    factor = WEEKS_PER_UNIT[unit]
    return low * factor, high * factor


class TimelineReconciler:
    """Warns when campaign phase durations disagree with the stated timeline."""

    def __init__(self, tolerance: float = 0.25):
        self.tolerance = tolerance

    def reconcile(self, timeline_text: str, phases: List[CampaignPhase]) -> List[str]:
        """
        Compare the total phase duration with the stated timeline.

        Args:
            timeline_text: executiveSummary.timelineToResults
            phases: Campaign phases

        Returns:
            Warning strings (never modifies the plan)
        """
        parsed = parse_timeline_weeks(timeline_text)
        if parsed is None or not phases:
            return []

        total_weeks = sum(p.duration_weeks for p in phases if is_finite_number(p.duration_weeks))
        low, high = parsed

        if total_weeks < low * (1 - self.tolerance) or total_weeks > high * (1 + self.tolerance):
            return [
                f'Campaign phases span {total_weeks:g} weeks but the executive summary states '
                f'"{timeline_text}" (about {low:.0f}-{high:.0f} weeks). Align the timeline or phase durations.'
            ]
        return []


@dataclass(frozen=True)
class DerivedFigures:
    """Derived numbers a plan's prose may quote."""
    monthly_budgets: Tuple[float, ...] = ()
    daily_ceiling: Optional[float] = None
    target_cac: Optional[float] = None
    target_cpl: Optional[float] = None
    estimated_ltv: Optional[float] = None
    expected_monthly_leads: Optional[int] = None
    expected_monthly_sqls: Optional[int] = None
    expected_monthly_customers: Optional[int] = None

    @property
    def monthly_budget(self) -> Optional[float]:
        return self.monthly_budgets[0] if self.monthly_budgets else None

    @classmethod
    def from_plan(cls, media_plan: MediaPlan) -> 'DerivedFigures':
        """Collect derived figures; the budget allocation total comes first."""
        budgets = []
        if media_plan.budget_allocation is not None:
            budgets.append(media_plan.budget_allocation.total_monthly_budget)
        if media_plan.executive_summary is not None:
            budgets.append(media_plan.executive_summary.recommended_monthly_budget)
        budgets = [b for b in budgets if is_finite_number(b) and b > 0]
        unique_budgets = tuple(dict.fromkeys(budgets))

        kwargs = {}
        if media_plan.budget_allocation is not None:
            kwargs['daily_ceiling'] = media_plan.budget_allocation.daily_ceiling
        if media_plan.performance_model is not None:
            model = media_plan.performance_model.cac_model
            kwargs.update(
                target_cac=model.target_cac,
                target_cpl=model.target_cpl,
                estimated_ltv=model.estimated_ltv,
                expected_monthly_leads=model.expected_monthly_leads,
                expected_monthly_sqls=model.expected_monthly_sqls,
                expected_monthly_customers=model.expected_monthly_customers,
            )

        return cls(monthly_budgets=unique_budgets, **kwargs)


@dataclass
class StaleSweepResult:
    """Result of a stale reference sweep."""
    media_plan: MediaPlan
    corrections: List[ValidationAdjustment] = field(default_factory=list)


def _build_mapping(pairs: List[Tuple[Optional[float], Optional[float]]]) -> Dict[float, float]:
    """Map old values to new ones, dropping unchanged and ambiguous entries."""
    mapping: Dict[float, float] = {}
    ambiguous = set()
    for old, new in pairs:
        if not is_finite_number(old) or not is_finite_number(new) or old <= 0:
            continue
        if values_equal(old, new, 0.005):
            continue
        if old in mapping and not values_equal(mapping[old], new, 0.005):
            ambiguous.add(old)
        mapping[old] = new
    for old in ambiguous:
        del mapping[old]
    return mapping


def _lookup(mapping: Dict[float, float], value: float) -> Optional[float]:
    for old, new in mapping.items():
        if values_equal(old, value, 0.005):
            return new
    return None


class StaleReferenceSweeper:
    """
    Replaces stale derived figures quoted in prose fields.

    Only fields known to quote budget, CAC, CPL, LTV and funnel counts are
    scanned, and only exact matches of a previous figure are rewritten.
    """

    def sweep(self,
              media_plan: MediaPlan,
              baseline: DerivedFigures,
              current: DerivedFigures) -> StaleSweepResult:
        """
        Sweep prose fields for figures that changed between baseline and current.

        Args:
            media_plan: Working media plan
            baseline: Figures the prose was written against
            current: Figures after recomputation

        Returns:
            StaleSweepResult with the updated plan and one correction per rewrite
        """
        new_budget = current.monthly_budget
        money_map = _build_mapping(
            [(old, new_budget) for old in baseline.monthly_budgets] + [
                (baseline.daily_ceiling, current.daily_ceiling),
                (baseline.target_cac, current.target_cac),
                (baseline.target_cpl, current.target_cpl),
                (baseline.estimated_ltv, current.estimated_ltv),
            ]
        )
        count_maps = {
            'lead': _build_mapping([(baseline.expected_monthly_leads, current.expected_monthly_leads)]),
            'sql': _build_mapping([(baseline.expected_monthly_sqls, current.expected_monthly_sqls)]),
            'customer': _build_mapping([(baseline.expected_monthly_customers, current.expected_monthly_customers)]),
        }

        corrections: List[ValidationAdjustment] = []

        def sweep_text(text: str, field_name: str) -> str:
            return self._sweep_text(text, field_name, money_map, count_maps, corrections)

        updates = {}
        summary = media_plan.executive_summary
        if summary is not None:
            new_summary = replace(
                summary,
                overview=sweep_text(summary.overview, 'executiveSummary.overview'),
                primary_objective=sweep_text(summary.primary_objective, 'executiveSummary.primaryObjective'),
                top_priorities=self._sweep_list(
                    summary.top_priorities, 'executiveSummary.topPriorities', sweep_text
                ),
            )
            if (is_finite_number(new_budget) and new_budget > 0
                    and not values_equal(summary.recommended_monthly_budget, new_budget)):
                corrections.append(ValidationAdjustment(
                    field='executiveSummary.recommendedMonthlyBudget',
                    original_value=summary.recommended_monthly_budget,
                    adjusted_value=new_budget,
                    rule='SweepStaleRef',
                    reason='Recommended monthly budget synced with budgetAllocation.totalMonthlyBudget.'
                ))
                new_summary = replace(new_summary, recommended_monthly_budget=new_budget)
            updates['executiveSummary'] = new_summary

        if media_plan.platform_strategy is not None:
            updates['platformStrategy'] = [
                replace(p, rationale=sweep_text(p.rationale, f'platformStrategy[{i}].rationale'))
                for i, p in enumerate(media_plan.platform_strategy)
            ]

        if media_plan.budget_allocation is not None:
            allocation = media_plan.budget_allocation
            updates['budgetAllocation'] = replace(
                allocation,
                ramp_up_strategy=sweep_text(allocation.ramp_up_strategy, 'budgetAllocation.rampUpStrategy')
            )

        if media_plan.risk_monitoring is not None:
            monitoring = media_plan.risk_monitoring
            risks = []
            for i, risk in enumerate(monitoring.risks):
                prefix = f'riskMonitoring.risks[{i}]'
                risks.append(replace(
                    risk,
                    risk=sweep_text(risk.risk, f'{prefix}.risk'),
                    mitigation=sweep_text(risk.mitigation, f'{prefix}.mitigation'),
                    contingency=sweep_text(risk.contingency, f'{prefix}.contingency'),
                ))
            updates['riskMonitoring'] = replace(
                monitoring,
                risks=risks,
                assumptions=self._sweep_list(monitoring.assumptions, 'riskMonitoring.assumptions', sweep_text)
            )

        if not corrections:
            return StaleSweepResult(media_plan=media_plan)

        logger.info(f"Stale reference sweep made {len(corrections)} correction(s)")
        return StaleSweepResult(media_plan=media_plan.with_sections(updates), corrections=corrections)

    def _sweep_list(self, items: List[str], field_name: str, sweep_text: Callable[[str, str], str]) -> List[str]:
        return [sweep_text(item, f'{field_name}[{i}]') for i, item in enumerate(items)]

    def _sweep_text(self,
                    text: str,
                    field_name: str,
                    money_map: Dict[float, float],
                    count_maps: Dict[str, Dict[float, float]],
                    corrections: List[ValidationAdjustment]) -> str:
        if not text or not isinstance(text, str):
            return text

        def record(old: str, new: str):
            corrections.append(ValidationAdjustment(
                field=field_name,
                original_value=old,
                adjusted_value=new,
                rule='SweepStaleRef',
                reason=f'{field_name}: "{old}" -> "{new}"'
            ))

        def replace_money(match: re.Match) -> str:
            value = float(match.group(1).replace(',', ''))
            if match.group(2):
                value *= 1000
            new = _lookup(money_map, value)
            if new is None:
                return match.group(0)
            if match.group(2) and new >= 1000:
                replacement = f"${format_amount(round(new / 1000, 1))}k"
            else:
                replacement = f"${format_amount(new)}"
            record(match.group(0), replacement)
            return replacement

        def replace_count(match: re.Match) -> str:
            noun = match.group(3)
            kind = noun.lower().rstrip('s')
            new = _lookup(count_maps[kind], float(match.group(1).replace(',', '')))
            if new is None:
                return match.group(0)
            replacement = f"{int(new):,}{match.group(2)}{noun}"
            record(match.group(0), replacement)
            return replacement

        text = _MONEY.sub(replace_money, text)
        return _COUNT.sub(replace_count, text)
