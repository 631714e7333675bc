"""Achievement definitions and milestone rules"""

from typing import Dict, Optional

from smartspend_scheduler.domain.exceptions import UnknownAchievementError
from smartspend_scheduler.domain.models import AchievementDefinition, AchievementKey

ACHIEVEMENTS: Dict[AchievementKey, AchievementDefinition] = {
    AchievementKey.GOAL_COMPLETED: AchievementDefinition(
        key=AchievementKey.GOAL_COMPLETED,
        title="Goal Achieved!",
        description="You've successfully completed a financial goal",
        type="goal_completed",
        icon="🏆",
    ),
    AchievementKey.THREE_GOALS: AchievementDefinition(
        key=AchievementKey.THREE_GOALS,
        title="Triple Threat!",
        description="You've completed 3 financial goals",
        type="milestone",
        icon="⭐",
    ),
    AchievementKey.FIVE_GOALS: AchievementDefinition(
        key=AchievementKey.FIVE_GOALS,
        title="High Five!",
        description="You've completed 5 financial goals",
        type="milestone",
        icon="✋",
    ),
    AchievementKey.TEN_GOALS: AchievementDefinition(
        key=AchievementKey.TEN_GOALS,
        title="Goal Master!",
        description="You've completed 10 financial goals",
        type="milestone",
        icon="👑",
    ),
}

# Highest threshold first
MILESTONES = (
    (10, AchievementKey.TEN_GOALS),
    (5, AchievementKey.FIVE_GOALS),
    (3, AchievementKey.THREE_GOALS),
)


def get_definition(key: AchievementKey | str) -> AchievementDefinition:
    try:
        return ACHIEVEMENTS[AchievementKey(key)]
    except (KeyError, ValueError) as e:
        raise UnknownAchievementError(f"Unknown achievement type: {key}") from e


def highest_milestone(completed_goals: int) -> Optional[tuple[int, AchievementKey]]:
    """
    Pick the single highest milestone reached by a completed-goal count.

    Returns (threshold, key), or None below the first threshold.
    """
    for threshold, key in MILESTONES:
        if completed_goals >= threshold:
            return threshold, key
    return None
