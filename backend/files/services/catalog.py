"""
Catalogue Service
=================
The tagging flow: register a Filecoin file, attach its tags and reward the tagger.
"""

import logging
from typing import Iterable, Optional
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from contracts.models import File
from files.exceptions import FileRecordNotFoundError, WalletRequiredError
from .tags import TagReconciler

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Service for creating and tagging catalogue entries.

    Tagging Algorithm:
    1. Create the File owned by the session user
    2. Reconcile tags (normalize, dedupe, resolve temp ids, link)
    3. Steps 1-2 commit together or not at all
    4. Trigger the tagging reward (TAG_FILE + beacon bonus) after commit
    """

    @classmethod
    def tag_file(cls, session, file_data: dict, tags: Iterable = ()) -> tuple[File, Optional[int]]:
        """
        Catalogue a new file with tags.

        Args:
            session: WalletSession of the tagging user
            file_data: Validated File fields (filecoin_hash, file_type, ...)
            tags: Tag labels or {'id', 'tag'} drafts

        Returns:
            tuple: (File instance, awarded points or None if queued/failed)
        """
        if session is None or session.user is None:
            raise WalletRequiredError()

        with transaction.atomic():
            file_record = File.objects.create(owner=session.user, **file_data)
            TagReconciler.reconcile(file_record, tags)

        logger.info(f"User {session.user.id} catalogued file {file_record.id}")
        reward = cls._trigger_tagging_reward(file_record)
        return file_record, reward

    @classmethod
    def add_tags(cls, session, file_id, tags: Iterable):
        """
        Attach more tags to an existing file. No reward is granted for edits.
        """
        if session is None or session.user is None:
            raise WalletRequiredError()
        file_record = cls.get_file(file_id)
        return TagReconciler.reconcile(file_record, tags)

    @staticmethod
    def get_file(file_id) -> File:
        try:
            return File.objects.select_related('owner').get(pk=file_id)
        except (File.DoesNotExist, ValueError, ValidationError):
            raise FileRecordNotFoundError(f"File {file_id} not found")

    @staticmethod
    def _trigger_tagging_reward(file_record: File) -> Optional[int]:
        """
        Award tagging points to the file owner (async if configured).

        Failures are logged and swallowed: the file is already committed.

        Returns:
            int: Points awarded when run synchronously, else None
        """
        try:
            from files.tasks import award_tagging_reward

            if getattr(settings, 'REWARDS_ASYNC_BONUS', False):
                award_tagging_reward.delay(str(file_record.owner_id), str(file_record.id))
                logger.info(f"Queued async tagging reward for file {file_record.id}")
                return None

            result = award_tagging_reward(str(file_record.owner_id), str(file_record.id))
            logger.info(f"Completed sync tagging reward for file {file_record.id}: {result}")
            return result.get('points')

        except Exception as e:
            logger.error(f"Failed to award tagging reward for file {file_record.id}: {str(e)}")
            return None
