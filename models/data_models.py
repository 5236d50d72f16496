"""
Core data models for the media plan validation cascade.

A media plan is exchanged with the chat/agent layer as camelCase JSON. Each
section is modelled as a dataclass with snake_case attributes; ``from_dict``
and ``to_dict`` translate between the two shapes. Keys that the engine does
not model are kept in each object's ``extra`` dict so a plan survives the
round trip unchanged.
"""

import copy
from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union, get_args, get_origin, get_type_hints


def _to_camel(name: str) -> str:
    head, *tail = name.split('_')
    return head + ''.join(part.title() for part in tail)


def json_key(key: str, **kwargs) -> Any:
    """Dataclass field whose JSON key does not follow plain camelCase."""
    return field(metadata={'json': key}, **kwargs)


def field_key(dataclass_field) -> str:
    """JSON key used for a dataclass field."""
    return dataclass_field.metadata.get('json') or _to_camel(dataclass_field.name)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def convert_value(annotation: Any, value: Any) -> Any:
    """
    Convert a JSON value into the type described by a field annotation.

    Args:
        annotation: Type hint of the target field
        value: Plain JSON value (dict, list, str, number, bool or None)

    Returns:
        Converted value

    Raises:
        TypeError: If the value does not fit the annotation
    """
    if value is None:
        return None

    origin = get_origin(annotation)

    if origin is Union:
        candidates = [arg for arg in get_args(annotation) if arg is not type(None)]
        return convert_value(candidates[0], value) if candidates else value

    if origin in (list, List):
        if not isinstance(value, list):
            raise TypeError(f"Expected a list, got {type(value).__name__}")
        args = get_args(annotation)
        item_type = args[0] if args else Any
        return [convert_value(item_type, item) for item in value]

    if origin in (dict, Dict):
        if not isinstance(value, dict):
            raise TypeError(f"Expected an object, got {type(value).__name__}")
        return copy.deepcopy(value)

    if isinstance(annotation, type) and is_dataclass(annotation):
        return from_dict(annotation, value)

    if annotation is float or annotation is int:
        if not is_number(value):
            raise TypeError(f"Expected a number, got {type(value).__name__}")
        return value

    if annotation is str:
        if not isinstance(value, str):
            raise TypeError(f"Expected a string, got {type(value).__name__}")
        return value

    if annotation is bool:
        if not isinstance(value, bool):
            raise TypeError(f"Expected a boolean, got {type(value).__name__}")
        return value

    return copy.deepcopy(value)


def from_dict(cls, data: Any):
    """Build a dataclass instance from its camelCase JSON representation."""
    if isinstance(data, cls):
        return data
    if not isinstance(data, dict):
        raise TypeError(f"{cls.__name__} expects an object, got {type(data).__name__}")

    hints = get_type_hints(cls)
    kwargs = {}
    known_keys = set()
    has_extra = False

    for dataclass_field in fields(cls):
        if dataclass_field.name == 'extra':
            has_extra = True
            continue
        key = field_key(dataclass_field)
        known_keys.add(key)
        if key in data:
            try:
                kwargs[dataclass_field.name] = convert_value(hints[dataclass_field.name], data[key])
            except TypeError as e:
                raise TypeError(f"{cls.__name__}.{key}: {str(e)}") from e

    if has_extra:
        kwargs['extra'] = {k: copy.deepcopy(v) for k, v in data.items() if k not in known_keys}

    return cls(**kwargs)


def to_plain(value: Any) -> Any:
    """Convert dataclasses, enums and containers into plain JSON values."""
    if is_dataclass(value) and not isinstance(value, type):
        result = {}
        # absent plan sections are left out, other None values serialize as null
        omit_none = isinstance(value, MediaPlan)
        for dataclass_field in fields(value):
            item = getattr(value, dataclass_field.name)
            if dataclass_field.name == 'extra':
                continue
            if item is None and omit_none:
                continue
            result[field_key(dataclass_field)] = to_plain(item)
        extra = getattr(value, 'extra', None)
        if extra:
            for key, item in extra.items():
                result.setdefault(key, to_plain(item))
        return result
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: to_plain(item) for key, item in value.items()}
    return value


class PlanSection(str, Enum):
    """Independently addressable sections of a media plan."""
    EXECUTIVE_SUMMARY = "executiveSummary"
    PLATFORM_STRATEGY = "platformStrategy"
    ICP_TARGETING = "icpTargeting"
    CAMPAIGN_STRUCTURE = "campaignStructure"
    CREATIVE_STRATEGY = "creativeStrategy"
    BUDGET_ALLOCATION = "budgetAllocation"
    CAMPAIGN_PHASES = "campaignPhases"
    KPI_TARGETS = "kpiTargets"
    PERFORMANCE_MODEL = "performanceModel"
    RISK_MONITORING = "riskMonitoring"

    @property
    def attribute(self) -> str:
        """Attribute name of this section on MediaPlan."""
        return {
            PlanSection.EXECUTIVE_SUMMARY: 'executive_summary',
            PlanSection.PLATFORM_STRATEGY: 'platform_strategy',
            PlanSection.ICP_TARGETING: 'icp_targeting',
            PlanSection.CAMPAIGN_STRUCTURE: 'campaign_structure',
            PlanSection.CREATIVE_STRATEGY: 'creative_strategy',
            PlanSection.BUDGET_ALLOCATION: 'budget_allocation',
            PlanSection.CAMPAIGN_PHASES: 'campaign_phases',
            PlanSection.KPI_TARGETS: 'kpi_targets',
            PlanSection.PERFORMANCE_MODEL: 'performance_model',
            PlanSection.RISK_MONITORING: 'risk_monitoring',
        }[self]


class ValidatorCategory(str, Enum):
    """Validators that can run as part of the cascade."""
    BUDGET = "budget"
    CAC_MODEL = "cacModel"
    KPI_TARGETS = "kpiTargets"
    CROSS_SECTION = "crossSection"
    PHASE_BUDGETS = "phaseBudgets"
    WITHIN_PLATFORM_BUDGETS = "withinPlatformBudgets"
    TIMELINE = "timeline"
    STALE_REFERENCES = "staleReferences"


# =============================================================================
# Media plan sections
# =============================================================================

@dataclass
class ExecutiveSummary:
    """Executive summary prose plus the headline budget and timeline."""
    overview: str = ""
    primary_objective: str = ""
    recommended_monthly_budget: float = 0.0
    timeline_to_results: str = ""
    top_priorities: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PlatformStrategy:
    """Strategy entry for one advertising platform."""
    platform: str
    rationale: str = ""
    budget_percentage: float = 0.0
    monthly_spend: float = 0.0
    priority: str = "secondary"
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PlatformTargeting:
    """Targeting parameters for one platform."""
    platform: str
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ICPTargeting:
    """Ideal customer profile targeting description."""
    platform_targeting: List[PlatformTargeting] = field(default_factory=list)
    demographics: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CampaignTemplate:
    """A single campaign inside the campaign structure."""
    name: str
    platform: str
    objective: str = ""
    funnel_stage: str = "cold"
    daily_budget: float = 0.0
    monthly_budget: float = 0.0
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CampaignStructure:
    """Campaigns grouped across the cold/warm/hot funnel."""
    campaigns: List[CampaignTemplate] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PlatformAllocation:
    """Budget share and amount for one platform."""
    platform: str
    percentage: float = 0.0
    monthly_budget: float = 0.0
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FunnelSplit:
    """Share of budget for one funnel stage."""
    stage: str
    percentage: float = 0.0
    rationale: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class BudgetAllocation:
    """Monthly budget, daily ceiling and per-platform breakdown."""
    total_monthly_budget: float = 0.0
    daily_ceiling: float = 0.0
    platform_breakdown: List[PlatformAllocation] = field(default_factory=list)
    funnel_split: List[FunnelSplit] = field(default_factory=list)
    ramp_up_strategy: str = ""
    testing_phase: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CampaignPhase:
    """An ordered campaign phase with its own budget and duration."""
    name: str
    phase: int = 0
    duration_weeks: float = 0.0
    objective: str = ""
    estimated_budget: float = 0.0
    campaigns: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class KPITarget:
    """A named KPI with a free-text target."""
    metric: str
    target: str = ""
    benchmark: str = ""
    timeframe: str = ""
    measurement_method: str = ""
    kpi_type: str = json_key('type', default="primary")
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CACModel:
    """Customer acquisition funnel model."""
    target_cac: Optional[float] = json_key('targetCAC', default=None)
    target_cpl: float = json_key('targetCPL', default=0.0)
    lead_to_sql_rate: float = 0.0
    sql_to_customer_rate: float = 0.0
    expected_monthly_leads: int = 0
    expected_monthly_sqls: int = json_key('expectedMonthlySQLs', default=0)
    expected_monthly_customers: int = 0
    estimated_ltv: float = json_key('estimatedLTV', default=0.0)
    ltv_to_cac_ratio: str = ""


@dataclass
class PerformanceModel:
    """Performance model; the CAC model is the only numeric part."""
    cac_model: CACModel = field(default_factory=CACModel)
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Risk:
    """A single risk with its mitigation prose."""
    risk: str
    mitigation: str = ""
    contingency: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RiskMonitoring:
    """Risks and planning assumptions."""
    risks: List[Risk] = field(default_factory=list)
    assumptions: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class MediaPlan:
    """Complete multi-section media plan document."""
    executive_summary: Optional[ExecutiveSummary] = None
    platform_strategy: Optional[List[PlatformStrategy]] = None
    icp_targeting: Optional[ICPTargeting] = None
    campaign_structure: Optional[CampaignStructure] = None
    creative_strategy: Optional[Dict[str, Any]] = None
    budget_allocation: Optional[BudgetAllocation] = None
    campaign_phases: Optional[List[CampaignPhase]] = None
    kpi_targets: Optional[List[KPITarget]] = None
    performance_model: Optional[PerformanceModel] = None
    risk_monitoring: Optional[RiskMonitoring] = None
    metadata: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MediaPlan':
        return from_dict(cls, data)

    def to_dict(self) -> Dict[str, Any]:
        return to_plain(self)

    def get_section(self, section: PlanSection) -> Any:
        return getattr(self, PlanSection(section).attribute)

    def with_sections(self, updates: Dict[Any, Any]) -> 'MediaPlan':
        """
        Return a new plan with some sections replaced.

        Args:
            updates: Mapping of section (PlanSection or its camelCase key) to new value

        Returns:
            New MediaPlan sharing every untouched section with this one
        """
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        for section, value in updates.items():
            values[PlanSection(section).attribute] = value
        return MediaPlan(**values)


# =============================================================================
# Onboarding configuration
# =============================================================================

@dataclass
class BudgetTargets:
    """Budget targets captured during onboarding."""
    monthly_ad_budget: float = 0.0
    target_cpl: Optional[float] = None
    daily_budget_ceiling: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PricingTier:
    """A pricing tier of the advertised offer."""
    name: str = ""
    price: float = 0.0
    billing_cycle: Optional[str] = None
    is_primary: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProductOffer:
    """Offer price and pricing model of the advertised product."""
    offer_price: float = 0.0
    pricing_model: List[str] = field(default_factory=list)
    pricing_tiers: List[PricingTier] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OnboardingFormData:
    """External configuration the cascade reads but never modifies."""
    budget_targets: BudgetTargets = field(default_factory=BudgetTargets)
    product_offer: ProductOffer = field(default_factory=ProductOffer)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OnboardingFormData':
        return from_dict(cls, data)


# =============================================================================
# Validation results
# =============================================================================

@dataclass
class ValidationAdjustment:
    """A correction made by a single validator."""
    field: str
    original_value: Union[str, float, None]
    adjusted_value: Union[str, float, None]
    rule: str
    reason: str


@dataclass
class ValidationAutoFix:
    """Audit-trail record of an automatic correction made by the cascade."""
    validator: ValidatorCategory
    field: str
    old_value: Union[str, float, None]
    new_value: Union[str, float, None]
    rule: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return to_plain(self)


@dataclass
class ValidationCascadeResult:
    """Everything a cascade run changed or flagged."""
    auto_fixes: List[ValidationAutoFix] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    updated_sections: Dict[str, Any] = field(default_factory=dict)
    validators_run: List[ValidatorCategory] = field(default_factory=list)

    def apply_to(self, media_plan: MediaPlan) -> MediaPlan:
        """Merge the updated sections into a plan snapshot."""
        if not self.updated_sections:
            return media_plan
        return media_plan.with_sections(self.updated_sections)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'autoFixes': [fix.to_dict() for fix in self.auto_fixes],
            'warnings': list(self.warnings),
            'updatedSections': {key: to_plain(value) for key, value in self.updated_sections.items()},
            'validatorsRun': [validator.value for validator in self.validators_run],
        }


@dataclass
class SimulatedCACSnapshot:
    """CAC model numbers at one monthly budget."""
    monthly_budget: float
    expected_monthly_leads: int
    expected_monthly_sqls: int = json_key('expectedMonthlySQLs')
    expected_monthly_customers: int = 0
    target_cac: Optional[float] = json_key('targetCAC', default=None)
    estimated_ltv: float = json_key('estimatedLTV', default=0.0)
    ltv_to_cac_ratio: str = ""


@dataclass
class BudgetSimulationResult:
    """Side-by-side comparison of the current and a proposed budget."""
    current: SimulatedCACSnapshot
    proposed: SimulatedCACSnapshot
    proposed_monthly_budget: float
    delta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return to_plain(self)
