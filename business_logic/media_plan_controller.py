"""
Media Plan Controller - entry point for edits to an existing media plan.

This module ties the edit boundary, the validator resolver and the
validation cascade together behind the operations the chat/agent layer
calls: propose an edit, apply it, recalculate, simulate a budget change
and summarize the plan.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd

from config.settings import CascadeConfig, config_manager
from models.data_models import (
    BudgetSimulationResult,
    MediaPlan,
    OnboardingFormData,
    PlanSection,
    ValidationCascadeResult,
)
from .allocation import format_money, is_finite_number
from .cac_model import derive_offer_price, derive_retention_multiplier
from .edit_applier import EditApplier, EditError, generate_diff_preview
from .error_handler import ErrorCategory, ErrorInfo, ErrorSeverity, error_handler
from .text_reconciler import DerivedFigures
from .validation_cascade import CascadeOrchestrator, resolve_affected_validators

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

AUDIT_COLUMNS = ['validator', 'field', 'old_value', 'new_value', 'rule', 'reason']


class MediaPlanController:
    """
    Main controller for media plan edits.

    Every edit produces a new plan snapshot; the plan passed in is never
    modified. Failures come back as (success, ..., message, notification)
    tuples instead of exceptions.
    """

    def __init__(self, config: Optional[CascadeConfig] = None):
        """
        Initialize the media plan controller.

        Args:
            config: Cascade configuration; loaded from settings when omitted
        """
        self.config = config or config_manager.load_config()
        self._configure_logging()

        self.edit_applier = EditApplier()
        self.orchestrator = CascadeOrchestrator(self.config)

        logger.info("MediaPlanController initialized")

    def _configure_logging(self):
        level = getattr(logging, self.config.log_level, None)
        if isinstance(level, int):
            logging.getLogger('business_logic').setLevel(level)
        else:
            logger.warning(f"Unknown log level {self.config.log_level}; keeping INFO")

    def propose_edit(self,
                     media_plan: Union[MediaPlan, Dict[str, Any]],
                     section: str,
                     field_path: str,
                     new_value: Any,
                     explanation: str = "") -> Dict[str, Any]:
        """
        Describe an edit without applying it.

        Args:
            media_plan: Current plan
            section: Section to edit
            field_path: Path inside the section
            new_value: Proposed value
            explanation: Why the edit is proposed

        Returns:
            Dictionary with the old value, a diff preview and the affected validators,
            or an error with guidance
        """
        proposal = {
            'section': section,
            'fieldPath': field_path,
            'newValue': new_value,
            'explanation': explanation,
        }

        try:
            plan = self._as_plan(media_plan)
            # Dry run: the edited snapshot is discarded
            _, old_value = self.edit_applier.apply(plan, section, field_path, new_value)
        except (EditError, TypeError) as e:
            error_info = error_handler.classify_error(e, "edit proposal")
            error_handler.log_error(error_info, "Edit proposal")
            proposal.update({
                'error': error_info.user_message,
                'guidance': error_info.suggested_action,
                'affectedValidators': [],
                'requiresValidationCascade': False,
            })
            return proposal

        affected = resolve_affected_validators(section, field_path)
        proposal.update({
            'oldValue': old_value,
            'diffPreview': generate_diff_preview(old_value, new_value),
            'affectedValidators': [validator.value for validator in affected],
            'requiresValidationCascade': len(affected) > 0,
        })
        return proposal

    def apply_edit(self,
                   media_plan: Union[MediaPlan, Dict[str, Any]],
                   onboarding: Union[OnboardingFormData, Dict[str, Any]],
                   section: str,
                   field_path: str,
                   new_value: Any) -> Tuple[bool, Optional[MediaPlan], Optional[ValidationCascadeResult],
                                            str, Optional[Dict[str, Any]]]:
        """
        Apply an approved edit and run the validation cascade.

        Args:
            media_plan: Current plan
            onboarding: Onboarding configuration
            section: Section to edit
            field_path: Path inside the section
            new_value: New value

        Returns:
            Tuple of (success, new plan, cascade result, status message, user_notification)
        """
        try:
            plan = self._as_plan(media_plan)
            onboarding_data = self._as_onboarding(onboarding)
            baseline = DerivedFigures.from_plan(plan)

            edited, old_value = self.edit_applier.apply(plan, section, field_path, new_value)
            logger.info(f"Edit {section}.{field_path}: {old_value!r} -> {new_value!r}")

            validators = resolve_affected_validators(section, field_path)
            result = self.orchestrator.run_cascade(edited, onboarding_data, validators, baseline=baseline)
            final_plan = result.apply_to(edited)

            message = f"Updated {section}.{field_path}. {self._cascade_message(result)}"
            return True, final_plan, result, message, self._warning_notification(result)

        except EditError as e:
            error_info = error_handler.handle_edit_error(e, "apply edit")
            error_handler.log_error(error_info, "Apply edit")
            return False, None, None, error_info.user_message, error_handler.create_user_notification(error_info)

        except Exception as e:
            error_info = error_handler.classify_error(e, "apply edit")
            error_handler.log_error(error_info, "Apply edit")
            return False, None, None, error_info.user_message, error_handler.create_user_notification(error_info)

    def recalculate(self,
                    media_plan: Union[MediaPlan, Dict[str, Any]],
                    onboarding: Union[OnboardingFormData, Dict[str, Any]],
                    changed_section: str,
                    changed_field: str = "") -> Tuple[bool, ValidationCascadeResult, str,
                                                      Optional[Dict[str, Any]]]:
        """
        Run the cascade for a section/field that was already edited.

        Args:
            media_plan: Plan after the edit
            onboarding: Onboarding configuration
            changed_section: Section that was edited
            changed_field: Field that was edited

        Returns:
            Tuple of (success, cascade result, summary message, user_notification);
            the result is empty when the plan could not be read
        """
        try:
            plan = self._as_plan(media_plan)
            onboarding_data = self._as_onboarding(onboarding)

            validators = resolve_affected_validators(changed_section, changed_field)
            result = self.orchestrator.run_cascade(plan, onboarding_data, validators)
            return True, result, self._cascade_message(result), self._warning_notification(result)

        except Exception as e:
            error_info = error_handler.classify_error(e, "recalculate")
            error_handler.log_error(error_info, "Recalculate")
            return (False, ValidationCascadeResult(), error_info.user_message,
                    error_handler.create_user_notification(error_info))

    def simulate_budget_change(self,
                               media_plan: Union[MediaPlan, Dict[str, Any]],
                               onboarding: Union[OnboardingFormData, Dict[str, Any]],
                               proposed_budget: float) -> Tuple[bool, Optional[BudgetSimulationResult],
                                                                str, Optional[Dict[str, Any]]]:
        """
        Compare the current funnel with the one a different monthly budget would give.

        Read-only: the plan is not modified.

        Args:
            media_plan: Current plan
            onboarding: Onboarding configuration
            proposed_budget: Proposed monthly budget (positive)

        Returns:
            Tuple of (success, simulation result, status message, user_notification)
        """
        try:
            if not is_finite_number(proposed_budget) or proposed_budget <= 0:
                raise ValueError(f"Proposed monthly budget must be a positive number, got {proposed_budget}")

            plan = self._as_plan(media_plan)
            onboarding_data = self._as_onboarding(onboarding)
            if plan.performance_model is None:
                error_info = ErrorInfo(
                    category=ErrorCategory.DATA_ERROR,
                    severity=ErrorSeverity.WARNING,
                    message="Budget simulation requested for a plan without performanceModel",
                    user_message="This media plan has no performance model to simulate.",
                    suggested_action="Generate the performance model section first."
                )
                return False, None, error_info.user_message, error_handler.create_user_notification(error_info)

            if plan.budget_allocation is not None:
                current_budget = plan.budget_allocation.total_monthly_budget
            else:
                current_budget = onboarding_data.budget_targets.monthly_ad_budget

            simulation = self.orchestrator.cac_computer.simulate_budget_change(
                plan.performance_model.cac_model,
                current_budget,
                proposed_budget,
                derive_offer_price(onboarding_data),
                derive_retention_multiplier(onboarding_data)
            )

            proposed = simulation.proposed
            message = (
                f"At {format_money(proposed_budget)}/month: {proposed.expected_monthly_leads} leads "
                f"({simulation.delta['leadsDelta']:+d}), {proposed.expected_monthly_customers} customers "
                f"({simulation.delta['customersDelta']:+d}), CAC {format_money(proposed.target_cac)}."
            )
            return True, simulation, message, None

        except Exception as e:
            error_info = error_handler.classify_error(e, "budget simulation")
            error_handler.log_error(error_info, "Budget simulation")
            return False, None, error_info.user_message, error_handler.create_user_notification(error_info)

    def summarize_media_plan(self, media_plan: Union[MediaPlan, Dict[str, Any]]) -> str:
        """
        Summarize a media plan into concise text for an agent prompt.

        Args:
            media_plan: Plan to summarize

        Returns:
            Markdown text with one block per present section, or the
            reviewer-facing error message when the plan could not be read
        """
        try:
            return self._summarize(self._as_plan(media_plan))
        except Exception as e:
            error_info = error_handler.classify_error(e, "plan summary")
            error_handler.log_error(error_info, "Plan summary")
            return error_info.user_message

    def _summarize(self, plan: MediaPlan) -> str:
        sections: List[str] = []

        summary = plan.executive_summary
        if summary is not None:
            priorities = '; '.join(summary.top_priorities[:3]) or 'N/A'
            sections.append(
                "## Executive Summary\n"
                f"- Objective: {summary.primary_objective or 'N/A'}\n"
                f"- Monthly Budget: {format_money(summary.recommended_monthly_budget)}\n"
                f"- Timeline: {summary.timeline_to_results or 'N/A'}\n"
                f"- Priorities: {priorities}"
            )

        if plan.platform_strategy:
            platforms = ', '.join(
                f"{p.platform} ({p.budget_percentage:g}%, {format_money(p.monthly_spend)}/mo, {p.priority})"
                for p in plan.platform_strategy
            )
            sections.append(f"## Platform Strategy\n- Platforms: {platforms}")

        allocation = plan.budget_allocation
        if allocation is not None:
            sections.append(
                "## Budget Allocation\n"
                f"- Total Monthly: {format_money(allocation.total_monthly_budget)}\n"
                f"- Daily Ceiling: {format_money(allocation.daily_ceiling)}"
            )

        if plan.performance_model is not None:
            model = plan.performance_model.cac_model
            sections.append(
                "## Performance Model (CAC)\n"
                f"- Target CAC: {format_money(model.target_cac)}\n"
                f"- Target CPL: {format_money(model.target_cpl)}\n"
                f"- Expected Leads: {model.expected_monthly_leads}/mo\n"
                f"- Expected Customers: {model.expected_monthly_customers}/mo\n"
                f"- LTV:CAC: {model.ltv_to_cac_ratio}"
            )

        if plan.kpi_targets:
            kpis = ', '.join(f"{k.metric}: {k.target}" for k in plan.kpi_targets[:5])
            sections.append(f"## KPI Targets\n- {kpis}")

        return '\n\n'.join(sections)

    def get_auto_fix_table(self, result: ValidationCascadeResult) -> pd.DataFrame:
        """
        Tabulate the auto-fix audit trail for review or export.

        Args:
            result: Cascade result

        Returns:
            DataFrame with one row per auto-fix
        """
        rows = [
            {
                'validator': fix.validator.value,
                'field': fix.field,
                'old_value': fix.old_value,
                'new_value': fix.new_value,
                'rule': fix.rule,
                'reason': fix.reason,
            }
            for fix in result.auto_fixes
        ]
        return pd.DataFrame(rows, columns=AUDIT_COLUMNS)

    def _cascade_message(self, result: ValidationCascadeResult) -> str:
        fixes = len(result.auto_fixes)
        warnings = len(result.warnings)

        if fixes > 0:
            message = f"Ran {len(result.validators_run)} validators. Applied {fixes} auto-fix(es)."
            if warnings > 0:
                message += f" {warnings} warning(s)."
            return message
        if warnings > 0:
            return f"No auto-fixes needed but {warnings} warning(s) found."
        return "All sections are consistent. No fixes needed."

    def _warning_notification(self, result: ValidationCascadeResult) -> Optional[Dict[str, Any]]:
        if not result.warnings:
            return None
        return {
            'type': 'warning',
            'title': 'Review Needed',
            'message': f"{len(result.warnings)} issue(s) could not be fixed automatically.",
            'warnings': list(result.warnings),
            'dismissible': True,
        }

    def _as_plan(self, media_plan: Union[MediaPlan, Dict[str, Any]]) -> MediaPlan:
        if isinstance(media_plan, MediaPlan):
            return media_plan
        return MediaPlan.from_dict(media_plan)

    def _as_onboarding(self, onboarding: Union[OnboardingFormData, Dict[str, Any]]) -> OnboardingFormData:
        if isinstance(onboarding, OnboardingFormData):
            return onboarding
        return OnboardingFormData.from_dict(onboarding)


def affected_sections(result: ValidationCascadeResult) -> List[PlanSection]:
    """Sections a cascade result replaces, in plan order."""
    return [section for section in PlanSection if section.value in result.updated_sections]
