"""
Customer acquisition funnel math.

Pure arithmetic, no AI involved:
    leads     = floor(budget / CPL)
    SQLs      = round(leads * leadToSqlRate)
    customers = round(SQLs * sqlToCustomerRate)
    CAC       = budget / customers
    LTV       = offerPrice * retentionMultiplier
    LTV:CAC   = LTV / CAC, formatted "X.X:1"

Every division is guarded so NaN or infinity never reaches the model.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from models.data_models import (
    BudgetSimulationResult,
    CACModel,
    OnboardingFormData,
    SimulatedCACSnapshot,
)
from .allocation import floor_safe, format_money, is_finite_number, round_half_up

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Sentinels used when there are no customers to divide by
UNDEFINED_CAC = None
UNDEFINED_RATIO = "n/a"

RETENTION_MULTIPLIERS = {
    'monthly': 12,
    'annual': 1,
    'one_time': 1,
    'usage_based': 6,
    'seat_based': 12,
    'custom': 3,
}


@dataclass
class CACModelInput:
    """Inputs of the CAC model computation."""
    monthly_budget: float
    target_cpl: float
    lead_to_sql_rate: float
    sql_to_customer_rate: float
    offer_price: float
    retention_multiplier: float


@dataclass
class CACModelResult:
    """Computed CAC model plus any numeric guards that fired."""
    cac_model: CACModel
    warnings: List[str] = field(default_factory=list)


def derive_offer_price(onboarding: OnboardingFormData) -> float:
    """
    Derive the offer price from onboarding data.

    Uses the primary pricing tier (or the first tier) when tiers exist,
    otherwise productOffer.offerPrice.
    """
    tiers = onboarding.product_offer.pricing_tiers
    if tiers:
        primary = next((tier for tier in tiers if tier.is_primary), tiers[0])
        return primary.price or 0
    return onboarding.product_offer.offer_price or 0


def derive_retention_multiplier(onboarding: OnboardingFormData) -> float:
    """
    Derive the LTV retention multiplier from the pricing model.

    monthly -> 12, annual -> 1, one_time -> 1, usage_based -> 6,
    seat_based -> 12, custom -> 3, anything else -> 1
    """
    models = onboarding.product_offer.pricing_model
    if not models:
        return 1

    primary_cycle = None
    for tier in onboarding.product_offer.pricing_tiers:
        if tier.is_primary:
            primary_cycle = tier.billing_cycle
            break

    return RETENTION_MULTIPLIERS.get(primary_cycle or models[0], 1)


def format_ratio(ltv: float, cac: Optional[float]) -> str:
    if cac is None or cac <= 0:
        return UNDEFINED_RATIO
    return f"{ltv / cac:.1f}:1"


class CACModelComputer:
    """
    Computes the CAC model from budget, CPL, funnel rates and offer economics.
    """

    def __init__(self, healthy_ltv_cac_ratio: float = 3.0):
        """
        Initialize the CAC model computer.

        Args:
            healthy_ltv_cac_ratio: LTV:CAC below this ratio produces a warning
        """
        self.healthy_ltv_cac_ratio = healthy_ltv_cac_ratio

    def compute(self, inputs: CACModelInput) -> CACModelResult:
        """
        Compute the funnel model.

        Args:
            inputs: Budget, CPL, funnel rates and offer economics

        Returns:
            CACModelResult with the model and guard warnings
        """
        warnings: List[str] = []

        budget = self._non_negative(inputs.monthly_budget, "Monthly budget", warnings)
        scale = self._rate_scale(inputs.lead_to_sql_rate, inputs.sql_to_customer_rate)
        lead_rate = self._normalize_rate(inputs.lead_to_sql_rate, scale, "Lead-to-SQL rate", warnings)
        close_rate = self._normalize_rate(inputs.sql_to_customer_rate, scale, "SQL-to-customer rate", warnings)
        offer_price = self._non_negative(inputs.offer_price, "Offer price", warnings)
        multiplier = self._non_negative(inputs.retention_multiplier, "Retention multiplier", warnings)

        target_cpl = inputs.target_cpl
        if not is_finite_number(target_cpl) or target_cpl <= 0:
            warnings.append(f"Target CPL ({target_cpl}) must be positive; expected leads set to 0.")
            target_cpl = 0
            leads = 0
        else:
            leads = floor_safe(budget / target_cpl)

        sqls = round_half_up(leads * lead_rate)
        customers = round_half_up(sqls * close_rate)

        if customers > 0:
            target_cac = round(budget / customers, 2)
        else:
            target_cac = UNDEFINED_CAC
            warnings.append(
                f"Funnel produces 0 customers/month ({leads} leads, {sqls} SQLs); "
                f"target CAC is undefined."
            )

        estimated_ltv = round(offer_price * multiplier, 2)
        ratio = format_ratio(estimated_ltv, target_cac)

        if target_cac is not None and target_cac > 0:
            ltv_cac = estimated_ltv / target_cac
            if ltv_cac < 1:
                warnings.append(
                    f"LTV:CAC of {ratio} is unsustainable: each customer costs more than they are worth."
                )
            elif ltv_cac < self.healthy_ltv_cac_ratio:
                warnings.append(
                    f"LTV:CAC of {ratio} is below the healthy {self.healthy_ltv_cac_ratio:g}:1 target."
                )

        cac_model = CACModel(
            target_cac=target_cac,
            target_cpl=target_cpl,
            lead_to_sql_rate=lead_rate,
            sql_to_customer_rate=close_rate,
            expected_monthly_leads=leads,
            expected_monthly_sqls=sqls,
            expected_monthly_customers=customers,
            estimated_ltv=estimated_ltv,
            ltv_to_cac_ratio=ratio
        )

        return CACModelResult(cac_model=cac_model, warnings=warnings)

    def simulate_budget_change(self,
                               current_model: CACModel,
                               current_budget: float,
                               proposed_budget: float,
                               offer_price: float,
                               retention_multiplier: float) -> BudgetSimulationResult:
        """
        Compare the current CAC model with the one a proposed budget would produce.

        Read-only: nothing in the plan is modified.

        Args:
            current_model: CAC model currently in the plan
            current_budget: Current total monthly budget
            proposed_budget: Proposed total monthly budget
            offer_price: Offer price used for LTV
            retention_multiplier: Retention multiplier used for LTV

        Returns:
            BudgetSimulationResult with both snapshots and deltas
        """
        proposed_model = self.compute(CACModelInput(
            monthly_budget=proposed_budget,
            target_cpl=current_model.target_cpl,
            lead_to_sql_rate=current_model.lead_to_sql_rate,
            sql_to_customer_rate=current_model.sql_to_customer_rate,
            offer_price=offer_price,
            retention_multiplier=retention_multiplier
        )).cac_model

        current = self._snapshot(current_budget, current_model)
        proposed = self._snapshot(proposed_budget, proposed_model)

        budget_change = proposed_budget - current_budget
        if current_budget:
            budget_change_percent = round_half_up(budget_change / current_budget * 100)
        else:
            budget_change_percent = 0

        if current_model.target_cac is not None and proposed_model.target_cac is not None:
            cac_delta = round(proposed_model.target_cac - current_model.target_cac, 2)
        else:
            cac_delta = None

        logger.info(
            f"Simulated budget change {format_money(current_budget)} -> {format_money(proposed_budget)}"
        )

        return BudgetSimulationResult(
            current=current,
            proposed=proposed,
            proposed_monthly_budget=proposed_budget,
            delta={
                'budgetChange': budget_change,
                'budgetChangePercent': budget_change_percent,
                'leadsDelta': proposed_model.expected_monthly_leads - current_model.expected_monthly_leads,
                'customersDelta': proposed_model.expected_monthly_customers - current_model.expected_monthly_customers,
                'cacDelta': cac_delta,
            }
        )

    def _snapshot(self, monthly_budget: float, model: CACModel) -> SimulatedCACSnapshot:
        return SimulatedCACSnapshot(
            monthly_budget=monthly_budget,
            expected_monthly_leads=model.expected_monthly_leads,
            expected_monthly_sqls=model.expected_monthly_sqls,
            expected_monthly_customers=model.expected_monthly_customers,
            target_cac=model.target_cac,
            estimated_ltv=model.estimated_ltv,
            ltv_to_cac_ratio=model.ltv_to_cac_ratio
        )

    def _non_negative(self, value: float, label: str, warnings: List[str]) -> float:
        if not is_finite_number(value):
            warnings.append(f"{label} ({value}) is not a finite number; using 0.")
            return 0
        if value < 0:
            warnings.append(f"{label} ({value}) is negative; clamped to 0.")
            return 0
        return value

    def _rate_scale(self, *rates: float) -> float:
        """Both funnel rates share one unit: percentages if either rate is above 1."""
        if any(is_finite_number(rate) and rate > 1 for rate in rates):
            return 100
        return 1

    def _normalize_rate(self, rate: float, scale: float, label: str, warnings: List[str]) -> float:
        """Convert a funnel rate to a fraction in [0, 1]."""
        if not is_finite_number(rate) or rate < 0:
            warnings.append(f"{label} ({rate}) is invalid; clamped to 0.")
            return 0
        fraction = rate / scale
        if fraction > 1:
            warnings.append(f"{label} ({rate:g}) exceeds 100%; clamped to 1.")
            return 1
        if scale != 1:
            warnings.append(f"{label} ({rate:g}) read as a percentage ({fraction:g}).")
        return fraction


def compute_cac_model(monthly_budget: float,
                      target_cpl: float,
                      lead_to_sql_rate: float,
                      sql_to_customer_rate: float,
                      offer_price: float,
                      retention_multiplier: float) -> CACModelResult:
    """Compute a CAC model with default thresholds."""
    return CACModelComputer().compute(CACModelInput(
        monthly_budget=monthly_budget,
        target_cpl=target_cpl,
        lead_to_sql_rate=lead_to_sql_rate,
        sql_to_customer_rate=sql_to_customer_rate,
        offer_price=offer_price,
        retention_multiplier=retention_multiplier
    ))
