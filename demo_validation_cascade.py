#!/usr/bin/env python3
"""
Demonstration of the media plan validation cascade.

This script edits the sample plan's monthly budget, shows which validators
run and the auto-fixes they record, then runs a read-only budget simulation.
"""

from business_logic.media_plan_controller import MediaPlanController, affected_sections
from data.sample_plans import sample_media_plan, sample_onboarding
from models.data_models import MediaPlan


def main():
    """Demonstrate an edit followed by the validation cascade."""

    print("=== Media Plan Validation Cascade Demo ===\n")

    controller = MediaPlanController()
    plan = MediaPlan.from_dict(sample_media_plan())
    onboarding = sample_onboarding()

    print("1. Current plan")
    print(controller.summarize_media_plan(plan))

    print("\n2. Proposing a budget increase to $20,000/month...")
    proposal = controller.propose_edit(
        plan, "budgetAllocation", "totalMonthlyBudget", 20000, "Client approved a larger budget"
    )
    print(proposal['diffPreview'])
    print(f"   ✓ Validators to run: {', '.join(proposal['affectedValidators'])}")

    print("\n3. Applying the edit...")
    success, new_plan, result, message, notification = controller.apply_edit(
        plan, onboarding, "budgetAllocation", "totalMonthlyBudget", 20000
    )
    if not success:
        print(f"   ✗ {message}")
        return

    print(f"   ✓ {message}")
    print(f"   ✓ Validators run: {', '.join(v.value for v in result.validators_run)}")
    print(f"   ✓ Updated sections: {', '.join(s.value for s in affected_sections(result))}")
    for warning in result.warnings:
        print(f"   ! {warning}")

    print("\n4. Auto-fix audit trail")
    table = controller.get_auto_fix_table(result)
    print(table[['validator', 'field', 'old_value', 'new_value', 'rule']].to_string(index=False))

    print("\n5. Running the cascade again (no further fixes expected)...")
    _, _, rerun_message, _ = controller.recalculate(new_plan, onboarding, "budgetAllocation", "totalMonthlyBudget")
    print(f"   ✓ {rerun_message}")

    print("\n6. What if the budget went to $30,000?")
    success, simulation, message, _ = controller.simulate_budget_change(new_plan, onboarding, 30000)
    print(f"   ✓ {message}" if success else f"   ✗ {message}")

    print("\n7. Rejected edit: replacing an array with a number")
    proposal = controller.propose_edit(new_plan, "budgetAllocation", "platformBreakdown", 5)
    print(f"   ✗ {proposal['error']}")
    print(f"     {proposal['guidance']}")

    print("\n=== Demo completed successfully! ===")


if __name__ == "__main__":
    main()
