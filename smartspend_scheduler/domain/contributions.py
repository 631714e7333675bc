"""Automatic goal contribution rules"""

from smartspend_scheduler.domain.models import ContributionFrequency, ContributionPlan


def contribution_description(frequency: ContributionFrequency) -> str:
    """E.g. "Weekly automatic contribution" """
    return f"{frequency.value.capitalize()} automatic contribution"


def plan_contribution(
    target_cents: int,
    saved_cents: int,
    planned_cents: int,
    frequency: ContributionFrequency,
) -> ContributionPlan:
    """
    Compute the deposit for one contribution period.

    The planned amount is clamped to the remaining gap so a goal never ends up
    above its target.

    Example:
        target 10000, saved 9500, planned 1000 -> deposit 500, saved 10000
    """
    remaining = max(target_cents - saved_cents, 0)
    amount = max(min(planned_cents, remaining), 0)
    saved_after = saved_cents + amount

    return ContributionPlan(
        amount_cents=amount,
        description=contribution_description(frequency),
        saved_after_cents=saved_after,
        completes_goal=saved_after >= target_cents,
    )
