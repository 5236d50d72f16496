"""
Validation cascade orchestration.

After an edit, the affected validators run over a working copy of the plan in
a fixed dependency order. Each step takes the current plan snapshot and
returns the sections it replaced together with its audit records; the
orchestrator threads the snapshot from one step to the next.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from config.settings import CascadeConfig, config_manager
from models.data_models import (
    CACModel,
    MediaPlan,
    OnboardingFormData,
    PlanSection,
    ValidationAdjustment,
    ValidationAutoFix,
    ValidationCascadeResult,
    ValidatorCategory,
    field_key,
)
from .allocation import floor_safe, is_finite_number
from .budget_validator import BudgetValidator
from .cac_model import CACModelComputer, CACModelInput, derive_offer_price, derive_retention_multiplier
from .kpi_reconciler import KPIReconciler
from .phase_validator import PhaseBudgetValidator, WithinPlatformBudgetValidator
from .plan_validator import CrossSectionValidator
from .text_reconciler import DerivedFigures, StaleReferenceSweeper, TimelineReconciler

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

V = ValidatorCategory

VALIDATOR_ORDER: Tuple[ValidatorCategory, ...] = (
    V.BUDGET,
    V.CAC_MODEL,
    V.KPI_TARGETS,
    V.CROSS_SECTION,
    V.PHASE_BUDGETS,
    V.WITHIN_PLATFORM_BUDGETS,
    V.TIMELINE,
    V.STALE_REFERENCES,
)

# Validator -> validators whose output it reads
VALIDATOR_DEPENDENCIES: Dict[ValidatorCategory, Tuple[ValidatorCategory, ...]] = {
    V.BUDGET: (),
    # funnel is computed from the fixed totalMonthlyBudget
    V.CAC_MODEL: (V.BUDGET,),
    # targets are compared with the recomputed funnel
    V.KPI_TARGETS: (V.CAC_MODEL,),
    # platform amounts come from budget, the KPI/model check needs both reconciled
    V.CROSS_SECTION: (V.BUDGET, V.CAC_MODEL, V.KPI_TARGETS),
    # phases use the fixed total and ceiling; campaigns may have been rescaled
    V.PHASE_BUDGETS: (V.BUDGET, V.CROSS_SECTION),
    # platform spend is synced by cross-section first
    V.WITHIN_PLATFORM_BUDGETS: (V.CROSS_SECTION,),
    # durations are read after phases settle
    V.TIMELINE: (V.PHASE_BUDGETS,),
    # prose is rewritten against the final figures
    V.STALE_REFERENCES: (V.BUDGET, V.CAC_MODEL, V.KPI_TARGETS, V.CROSS_SECTION),
}

SECTION_VALIDATORS: Dict[PlanSection, Tuple[ValidatorCategory, ...]] = {
    PlanSection.BUDGET_ALLOCATION: (
        V.BUDGET, V.CAC_MODEL, V.KPI_TARGETS, V.CROSS_SECTION, V.PHASE_BUDGETS, V.STALE_REFERENCES
    ),
    PlanSection.PLATFORM_STRATEGY: (V.CROSS_SECTION, V.WITHIN_PLATFORM_BUDGETS),
    PlanSection.CAMPAIGN_STRUCTURE: (V.CROSS_SECTION, V.PHASE_BUDGETS, V.WITHIN_PLATFORM_BUDGETS),
    PlanSection.KPI_TARGETS: (V.KPI_TARGETS, V.STALE_REFERENCES),
    PlanSection.PERFORMANCE_MODEL: (V.CAC_MODEL, V.KPI_TARGETS, V.STALE_REFERENCES),
    PlanSection.CAMPAIGN_PHASES: (V.PHASE_BUDGETS, V.TIMELINE),
    PlanSection.EXECUTIVE_SUMMARY: (V.TIMELINE,),
    PlanSection.ICP_TARGETING: (V.CROSS_SECTION,),
}

FALLBACK_VALIDATORS: Tuple[ValidatorCategory, ...] = (V.STALE_REFERENCES,)


def check_validator_order(order: Sequence[ValidatorCategory] = VALIDATOR_ORDER,
                          dependencies: Mapping[ValidatorCategory, Iterable[ValidatorCategory]] = None) -> None:
    """
    Verify that every validator comes after the validators it depends on.

    Raises:
        ValueError: If a validator is missing from the order or precedes a dependency
    """
    dependencies = VALIDATOR_DEPENDENCIES if dependencies is None else dependencies
    position = {validator: i for i, validator in enumerate(order)}

    for validator, required in dependencies.items():
        if validator not in position:
            raise ValueError(f"Validator {validator.value} is missing from the execution order")
        for dependency in required:
            if dependency not in position:
                raise ValueError(f"Dependency {dependency.value} of {validator.value} is missing from the order")
            if position[dependency] >= position[validator]:
                raise ValueError(f"Validator {validator.value} must run after {dependency.value}")


def resolve_affected_validators(section: Union[str, PlanSection], field_path: str = "") -> List[ValidatorCategory]:
    """
    Determine which validators must run after a section/field changed.

    Args:
        section: Edited section key
        field_path: Edited field path (the mapping is per section)

    Returns:
        Deduplicated validators in execution order; never empty
    """
    try:
        affected = SECTION_VALIDATORS.get(PlanSection(section), FALLBACK_VALIDATORS)
    except ValueError:
        affected = FALLBACK_VALIDATORS

    selected = set(affected)
    return [validator for validator in VALIDATOR_ORDER if validator in selected]


@dataclass
class CascadeContext:
    """Inputs shared by every step of one cascade run."""
    onboarding: OnboardingFormData
    monthly_budget: float
    offer_price: float
    retention_multiplier: float
    daily_ceiling_override: Optional[float]
    baseline: DerivedFigures


@dataclass
class StepOutcome:
    """Sections a step replaced plus its audit records."""
    updates: Dict[PlanSection, Any] = field(default_factory=dict)
    adjustments: List[ValidationAdjustment] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class CascadeOrchestrator:
    """
    Runs requested validators in dependency order over an immutable plan snapshot.

    Validators not in the requested set are never run, even when a requested
    validator depends on them.
    """

    def __init__(self, config: Optional[CascadeConfig] = None):
        """
        Initialize the orchestrator and its validators.

        Args:
            config: Tolerances and constants; loaded from settings when omitted
        """
        self.config = config or config_manager.load_config()

        self.budget_validator = BudgetValidator(
            budget_drift_tolerance=self.config.budget_drift_tolerance,
            days_per_month=self.config.days_per_month
        )
        self.cac_computer = CACModelComputer(healthy_ltv_cac_ratio=self.config.healthy_ltv_cac_ratio)
        self.kpi_reconciler = KPIReconciler(tolerance=self.config.kpi_tolerance)
        self.cross_section_validator = CrossSectionValidator(
            daily_budget_tolerance=self.config.daily_budget_tolerance,
            kpi_tolerance=self.config.cross_section_kpi_tolerance
        )
        self.phase_validator = PhaseBudgetValidator()
        self.within_platform_validator = WithinPlatformBudgetValidator()
        self.timeline_reconciler = TimelineReconciler(tolerance=self.config.timeline_tolerance)
        self.stale_reference_sweeper = StaleReferenceSweeper()

        self._steps: Dict[ValidatorCategory, Callable[[MediaPlan, CascadeContext], Optional[StepOutcome]]] = {
            V.BUDGET: self._run_budget,
            V.CAC_MODEL: self._run_cac_model,
            V.KPI_TARGETS: self._run_kpi_targets,
            V.CROSS_SECTION: self._run_cross_section,
            V.PHASE_BUDGETS: self._run_phase_budgets,
            V.WITHIN_PLATFORM_BUDGETS: self._run_within_platform_budgets,
            V.TIMELINE: self._run_timeline,
            V.STALE_REFERENCES: self._run_stale_references,
        }

    def run_cascade(self,
                    media_plan: MediaPlan,
                    onboarding: OnboardingFormData,
                    validators: Iterable[Union[str, ValidatorCategory]],
                    baseline: Optional[DerivedFigures] = None) -> ValidationCascadeResult:
        """
        Run the requested validators.

        Args:
            media_plan: Plan snapshot after the edit; never modified
            onboarding: Onboarding configuration
            validators: Validators to run (any order, duplicates ignored)
            baseline: Derived figures the plan prose was written against;
                taken from media_plan when omitted

        Returns:
            ValidationCascadeResult with auto-fixes, warnings and changed sections
        """
        requested = {ValidatorCategory(v) for v in validators}
        context = self._build_context(media_plan, onboarding, baseline)
        result = ValidationCascadeResult()
        working = media_plan

        logger.info(f"Running validation cascade: {', '.join(v.value for v in VALIDATOR_ORDER if v in requested)}")

        for category in VALIDATOR_ORDER:
            if category not in requested:
                continue

            try:
                outcome = self._steps[category](working, context)
            except Exception as e:
                logger.error(f"{category.value} validator failed: {str(e)}", exc_info=True)
                result.validators_run.append(category)
                result.warnings.append(f"{category.value} validator failed: {str(e)}")
                continue

            if outcome is None:
                logger.debug(f"Skipping {category.value} validator: required section missing")
                continue

            result.validators_run.append(category)
            if outcome.updates:
                working = working.with_sections(outcome.updates)
            for adjustment in outcome.adjustments:
                result.auto_fixes.append(ValidationAutoFix(
                    validator=category,
                    field=adjustment.field,
                    old_value=adjustment.original_value,
                    new_value=adjustment.adjusted_value,
                    rule=adjustment.rule,
                    reason=adjustment.reason
                ))
            result.warnings.extend(outcome.warnings)

        for section in PlanSection:
            new_value = working.get_section(section)
            if new_value != media_plan.get_section(section):
                result.updated_sections[section.value] = new_value

        logger.info(
            f"Validation cascade finished: {len(result.validators_run)} validator(s), "
            f"{len(result.auto_fixes)} auto-fix(es), {len(result.warnings)} warning(s)"
        )
        return result

    def _build_context(self,
                       media_plan: MediaPlan,
                       onboarding: OnboardingFormData,
                       baseline: Optional[DerivedFigures]) -> CascadeContext:
        targets = onboarding.budget_targets
        return CascadeContext(
            onboarding=onboarding,
            monthly_budget=targets.monthly_ad_budget,
            offer_price=derive_offer_price(onboarding),
            retention_multiplier=derive_retention_multiplier(onboarding),
            daily_ceiling_override=targets.daily_budget_ceiling,
            baseline=baseline or DerivedFigures.from_plan(media_plan)
        )

    def _effective_budget(self, plan: MediaPlan, context: CascadeContext) -> float:
        allocation = plan.budget_allocation
        if allocation is not None and is_finite_number(allocation.total_monthly_budget):
            return allocation.total_monthly_budget
        return context.monthly_budget

    def _run_budget(self, plan: MediaPlan, context: CascadeContext) -> Optional[StepOutcome]:
        if plan.budget_allocation is None:
            return None

        result = self.budget_validator.validate_and_fix(
            plan.budget_allocation, context.monthly_budget, context.daily_ceiling_override
        )
        outcome = StepOutcome(adjustments=result.adjustments, warnings=result.warnings)
        if result.budget != plan.budget_allocation:
            outcome.updates[PlanSection.BUDGET_ALLOCATION] = result.budget
        return outcome

    def _run_cac_model(self, plan: MediaPlan, context: CascadeContext) -> Optional[StepOutcome]:
        if plan.performance_model is None:
            return None

        current = plan.performance_model.cac_model
        target_cpl = context.onboarding.budget_targets.target_cpl or current.target_cpl
        result = self.cac_computer.compute(CACModelInput(
            monthly_budget=self._effective_budget(plan, context),
            target_cpl=target_cpl,
            lead_to_sql_rate=current.lead_to_sql_rate,
            sql_to_customer_rate=current.sql_to_customer_rate,
            offer_price=context.offer_price,
            retention_multiplier=context.retention_multiplier
        ))

        outcome = StepOutcome(warnings=result.warnings)
        outcome.adjustments = self._diff_cac_model(current, result.cac_model)
        if outcome.adjustments:
            outcome.updates[PlanSection.PERFORMANCE_MODEL] = replace(plan.performance_model, cac_model=result.cac_model)
        return outcome

    def _diff_cac_model(self, current: CACModel, recomputed: CACModel) -> List[ValidationAdjustment]:
        """One adjustment per CAC model field whose value changed."""
        adjustments = []
        for model_field in CACModel.__dataclass_fields__.values():
            old = getattr(current, model_field.name)
            new = getattr(recomputed, model_field.name)
            if old == new:
                continue
            adjustments.append(ValidationAdjustment(
                field=f'performanceModel.cacModel.{field_key(model_field)}',
                original_value=old,
                adjusted_value=new,
                rule='CACModel_Recompute',
                reason='Recomputed CAC model from updated inputs.'
            ))
        return adjustments

    def _run_kpi_targets(self, plan: MediaPlan, context: CascadeContext) -> Optional[StepOutcome]:
        if plan.kpi_targets is None or plan.performance_model is None:
            return None

        result = self.kpi_reconciler.reconcile(
            plan.kpi_targets,
            plan.performance_model.cac_model,
            self._effective_budget(plan, context),
            context.offer_price
        )
        outcome = StepOutcome(adjustments=result.overrides, warnings=result.warnings)
        if result.overrides:
            outcome.updates[PlanSection.KPI_TARGETS] = result.kpi_targets
        return outcome

    def _run_cross_section(self, plan: MediaPlan, context: CascadeContext) -> Optional[StepOutcome]:
        if plan.platform_strategy is None or plan.budget_allocation is None:
            return None

        result = self.cross_section_validator.validate(
            platform_strategy=plan.platform_strategy,
            budget_allocation=plan.budget_allocation,
            icp_targeting=plan.icp_targeting,
            campaign_structure=plan.campaign_structure,
            kpi_targets=plan.kpi_targets,
            performance_model=plan.performance_model
        )
        outcome = StepOutcome(adjustments=result.adjustments, warnings=result.warnings)
        if result.platform_strategy is not None:
            outcome.updates[PlanSection.PLATFORM_STRATEGY] = result.platform_strategy
        if result.campaign_structure is not None:
            outcome.updates[PlanSection.CAMPAIGN_STRUCTURE] = result.campaign_structure
        return outcome

    def _run_phase_budgets(self, plan: MediaPlan, context: CascadeContext) -> Optional[StepOutcome]:
        if plan.campaign_phases is None:
            return None

        budget = self._effective_budget(plan, context)
        if plan.budget_allocation is not None:
            daily_ceiling = plan.budget_allocation.daily_ceiling
        else:
            daily_ceiling = floor_safe(budget / self.config.days_per_month) if is_finite_number(budget) else 0
        campaigns = plan.campaign_structure.campaigns if plan.campaign_structure is not None else None

        result = self.phase_validator.validate(plan.campaign_phases, budget, daily_ceiling, campaigns)
        outcome = StepOutcome(adjustments=result.adjustments, warnings=result.warnings)
        if result.adjustments:
            outcome.updates[PlanSection.CAMPAIGN_PHASES] = result.phases
        return outcome

    def _run_within_platform_budgets(self, plan: MediaPlan, context: CascadeContext) -> Optional[StepOutcome]:
        if plan.campaign_structure is None or plan.platform_strategy is None:
            return None

        result = self.within_platform_validator.validate(plan.campaign_structure, plan.platform_strategy)
        outcome = StepOutcome(adjustments=result.adjustments, warnings=result.warnings)
        if result.adjustments:
            outcome.updates[PlanSection.CAMPAIGN_STRUCTURE] = result.campaign_structure
        return outcome

    def _run_timeline(self, plan: MediaPlan, context: CascadeContext) -> Optional[StepOutcome]:
        if plan.executive_summary is None or plan.campaign_phases is None:
            return None

        warnings = self.timeline_reconciler.reconcile(
            plan.executive_summary.timeline_to_results, plan.campaign_phases
        )
        return StepOutcome(warnings=warnings)

    def _run_stale_references(self, plan: MediaPlan, context: CascadeContext) -> Optional[StepOutcome]:
        result = self.stale_reference_sweeper.sweep(plan, context.baseline, DerivedFigures.from_plan(plan))
        outcome = StepOutcome(adjustments=result.corrections)
        if result.corrections:
            for section in PlanSection:
                new_value = result.media_plan.get_section(section)
                if new_value != plan.get_section(section):
                    outcome.updates[section] = new_value
        return outcome


def run_validation_cascade(media_plan: MediaPlan,
                           onboarding: OnboardingFormData,
                           validators: Iterable[Union[str, ValidatorCategory]],
                           config: Optional[CascadeConfig] = None) -> ValidationCascadeResult:
    """Run the validation cascade with a fresh orchestrator."""
    return CascadeOrchestrator(config).run_cascade(media_plan, onboarding, validators)
