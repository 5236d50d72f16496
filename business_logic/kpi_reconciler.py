"""
Reconciliation of stated KPI targets with the computed CAC model.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from models.data_models import CACModel, KPITarget, ValidationAdjustment
from .allocation import format_amount, is_finite_number

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# First number in a target string, e.g. "<$1,200", "200/month", "$7.5k", "3.2:1"
_TARGET_NUMBER = re.compile(r'(\d[\d,]*(?:\.\d+)?)(\s?[kK]\b)?')

_RULES = {
    'cpl': 'KPI_CPL_Override',
    'cac': 'KPI_CAC_Override',
    'leads': 'KPI_Leads_Override',
    'sqls': 'KPI_SQL_Override',
    'customers': 'KPI_Customers_Override',
    'ltv': 'KPI_LTV_Override',
    'ltv_cac': 'KPI_LTVCAC_Override',
    'roas': 'KPI_ROAS_Override',
}

_LABELS = {
    'cpl': 'CPL',
    'cac': 'CAC',
    'leads': 'leads/month',
    'sqls': 'SQLs/month',
    'customers': 'customers/month',
    'ltv': 'LTV',
    'ltv_cac': 'LTV:CAC',
    'roas': 'ROAS',
}


@dataclass
class KPIReconciliationResult:
    """Result of KPI reconciliation."""
    kpi_targets: List[KPITarget]
    overrides: List[ValidationAdjustment] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def classify_metric(metric: str) -> Optional[str]:
    """
    Map a KPI metric name to the derived quantity it states, if any.

    Args:
        metric: Free-text metric name, e.g. "Customer Acquisition Cost (CAC)"

    Returns:
        One of cpl, cac, leads, sqls, customers, ltv, ltv_cac, roas or None
    """
    name = metric.lower()

    if ('ltv' in name or 'lifetime value' in name) and ('cac' in name or 'acquisition cost' in name):
        return 'ltv_cac'
    if 'customer acquisition cost' in name or re.search(r'\bcac\b', name):
        return 'cac'
    if 'cost per lead' in name or re.search(r'\bcpl\b', name):
        return 'cpl'
    if 'return on ad spend' in name or re.search(r'\broas\b', name):
        return 'roas'
    # Other costs (cost per SQL, cost per demo) and rates have no derivation here
    if 'cost' in name:
        return None
    if any(word in name for word in ('rate', 'conversion', '%', 'ratio', 'percent')):
        return None
    if 'lifetime value' in name or re.search(r'\bltv\b', name):
        return 'ltv'
    if re.search(r'\bsqls?\b', name) or 'sales qualified' in name or 'sales-qualified' in name:
        return 'sqls'
    if re.search(r'\bcustomers?\b', name):
        return 'customers'
    if re.search(r'\bleads?\b', name):
        return 'leads'
    return None


def parse_target_value(target: str) -> Optional[Tuple[float, re.Match]]:
    """Parse the first number in a target string, honouring a trailing 'k'."""
    match = _TARGET_NUMBER.search(target or '')
    if not match:
        return None
    value = float(match.group(1).replace(',', ''))
    if match.group(2):
        value *= 1000
    return value, match


def derived_kpi_values(cac_model: CACModel, effective_budget: float, offer_price: float) -> Dict[str, Optional[float]]:
    """Values every known KPI should state, given the CAC model."""
    cac = cac_model.target_cac
    roas = None
    if is_finite_number(effective_budget) and effective_budget > 0:
        roas = cac_model.expected_monthly_customers * (offer_price or 0) / effective_budget

    return {
        'cpl': cac_model.target_cpl,
        'cac': cac,
        'leads': cac_model.expected_monthly_leads,
        'sqls': cac_model.expected_monthly_sqls,
        'customers': cac_model.expected_monthly_customers,
        'ltv': cac_model.estimated_ltv,
        'ltv_cac': cac_model.estimated_ltv / cac if cac else None,
        'roas': roas,
    }


def _format_for_kind(kind: str, value: float) -> str:
    if kind in ('ltv_cac', 'roas'):
        return f"{value:.1f}"
    if kind in ('leads', 'sqls', 'customers'):
        return f"{int(value):,}"
    return format_amount(value)


class KPIReconciler:
    """
    Overwrites KPI targets that contradict the deterministic funnel model.

    Only metrics with a known derivation are touched; everything else is
    left exactly as written.
    """

    def __init__(self, tolerance: float = 0.05):
        """
        Initialize the KPI reconciler.

        Args:
            tolerance: Relative deviation allowed before a target is overwritten
        """
        self.tolerance = tolerance

    def reconcile(self,
                  kpi_targets: List[KPITarget],
                  cac_model: CACModel,
                  effective_budget: float,
                  offer_price: float) -> KPIReconciliationResult:
        """
        Reconcile KPI targets against the CAC model.

        Args:
            kpi_targets: Current KPI targets
            cac_model: Freshly computed CAC model
            effective_budget: Total monthly budget in effect
            offer_price: Offer price used for ROAS

        Returns:
            KPIReconciliationResult with corrected targets and overrides
        """
        derived = derived_kpi_values(cac_model, effective_budget, offer_price)
        overrides: List[ValidationAdjustment] = []
        fixed: List[KPITarget] = []

        for i, kpi in enumerate(kpi_targets):
            kind = classify_metric(kpi.metric)
            expected = derived.get(kind) if kind else None
            parsed = parse_target_value(kpi.target)

            if expected is None or parsed is None:
                fixed.append(kpi)
                continue

            stated, match = parsed
            deviation = self._relative_deviation(stated, expected)
            if deviation is None or deviation <= self.tolerance:
                fixed.append(kpi)
                continue

            new_target = kpi.target[:match.start()] + _format_for_kind(kind, expected) + kpi.target[match.end():]
            deviation_text = "from zero" if deviation == float('inf') else f"{deviation:.1%}"
            overrides.append(ValidationAdjustment(
                field=f'kpiTargets[{i}].target',
                original_value=kpi.target,
                adjusted_value=new_target,
                rule=_RULES[kind],
                reason=(
                    f"Stated {kpi.metric} target ({kpi.target}) deviates {deviation_text} from the computed "
                    f"{_LABELS[kind]} ({_format_for_kind(kind, expected)}). Overriding with math."
                )
            ))
            fixed.append(replace(kpi, target=new_target))

        if overrides:
            logger.info(f"KPI reconciliation overrode {len(overrides)} target(s)")
            return KPIReconciliationResult(kpi_targets=fixed, overrides=overrides)

        return KPIReconciliationResult(kpi_targets=kpi_targets)

    def _relative_deviation(self, stated: float, expected: float) -> Optional[float]:
        if not is_finite_number(expected):
            return None
        if expected == 0:
            return 0.0 if stated == 0 else float('inf')
        return abs(stated - expected) / abs(expected)
