"""
Celery tasks for reward bookkeeping.

The tagging reward fetches a drand beacon round, so it can be pushed off the
request path when REWARDS_ASYNC_BONUS is enabled.
"""

import logging
from celery import shared_task
from files.services.points import PointsLedger

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    name='files.tasks.award_tagging_reward'
)
def award_tagging_reward(self, user_id: str, file_id: str) -> dict:
    """
    Credit a user for tagging a file.

    Args:
        user_id: UUID string of the tagging user
        file_id: UUID string of the tagged file (for logging)

    Returns:
        Dictionary with the awarded points
    """
    try:
        points = PointsLedger.award_tagging(user_id)
        logger.info(f"Awarded {points} tagging points to user {user_id} for file {file_id}")
        return {
            'success': True,
            'user_id': user_id,
            'file_id': file_id,
            'points': points
        }

    except Exception as e:
        logger.error(f"Tagging reward failed for file {file_id}: {str(e)}", exc_info=True)
        raise
