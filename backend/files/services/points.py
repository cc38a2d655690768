"""
Points Ledger
=============
Single mutable reward points balance per user, adjusted by signed deltas.
"""

import logging
from django.conf import settings
from django.db.models import F
from contracts.models import User
from files.exceptions import UserNotFoundError
from .randomness import BonusRandomnessService

logger = logging.getLogger(__name__)


DEFAULT_REWARD_POINTS = {
    'TAG_FILE': 10,           # Tagging a file
    'UPVOTE_RECEIVED': 2,     # Your tagged file gets an upvote
    'DOWNVOTE_RECEIVED': -1,  # Your tagged file gets a downvote
}


def get_reward_points(name: str) -> int:
    """Reward amount by name, overridable via settings.REWARD_POINTS."""
    configured = getattr(settings, 'REWARD_POINTS', {}) or {}
    return int(configured.get(name, DEFAULT_REWARD_POINTS[name]))


class PointsLedger:
    """
    Apply reward point deltas.

    Deltas are applied as a single UPDATE ... SET reward_points = reward_points + delta,
    so concurrent deltas for the same user never overwrite each other.
    """

    @staticmethod
    def apply_delta(user_id, delta: int) -> int:
        """
        Add a signed delta to a user's balance.

        Args:
            user_id: Primary key of the user
            delta: Signed number of points

        Returns:
            int: The balance after the update

        Raises:
            UserNotFoundError: If no such user exists
        """
        updated = User.objects.filter(pk=user_id).update(
            reward_points=F('reward_points') + delta
        )
        if not updated:
            raise UserNotFoundError(f"User {user_id} not found")

        balance = User.objects.values_list('reward_points', flat=True).get(pk=user_id)
        logger.info(f"Applied {delta:+d} points to user {user_id} (balance {balance})")
        return balance

    @classmethod
    def award_tagging(cls, user_id) -> int:
        """
        Reward a user for tagging a file: fixed TAG_FILE amount plus a beacon bonus.

        Returns:
            int: The delta that was awarded
        """
        bonus = BonusRandomnessService.get_bonus()
        delta = get_reward_points('TAG_FILE') + bonus
        cls.apply_delta(user_id, delta)
        return delta

    @staticmethod
    def get_balance(user_id) -> int:
        try:
            return User.objects.values_list('reward_points', flat=True).get(pk=user_id)
        except User.DoesNotExist:
            raise UserNotFoundError(f"User {user_id} not found")
