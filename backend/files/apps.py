"""
Files app configuration.

Logs the reward configuration on startup.
"""

import logging
from django.apps import AppConfig

logger = logging.getLogger(__name__)


class FilesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'files'

    def ready(self):
        """Report the effective reward settings once the app registry is ready."""
        import sys
        if 'runserver' in sys.argv or (sys.argv and 'gunicorn' in sys.argv[0]):
            from django.conf import settings
            from files.services.points import DEFAULT_REWARD_POINTS, get_reward_points

            rewards = {name: get_reward_points(name) for name in DEFAULT_REWARD_POINTS}
            mode = 'async' if getattr(settings, 'REWARDS_ASYNC_BONUS', False) else 'sync'
            logger.info(f"Reward points configured: {rewards} (tagging bonus {mode})")
