"""
Tag Reconciliation Service
==========================
Resolves user-entered tag labels into durable tag ids and links them to files.
"""

import itertools
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Iterable, List, Union
from django.db import transaction
from contracts.models import File, FileTag, Tag
from files.exceptions import PendingTagError, TagNotFoundError

logger = logging.getLogger(__name__)


TEMP_ID_PREFIX = 'temp-'
SUGGESTION_LIMIT = 10

_temp_sequence = itertools.count(1)


def new_temp_id() -> str:
    """Client-local id for a tag that has not been saved yet."""
    return f"{TEMP_ID_PREFIX}{int(time.time() * 1000)}-{next(_temp_sequence)}"


def is_temp_id(tag_id) -> bool:
    return str(tag_id).startswith(TEMP_ID_PREFIX)


@dataclass(frozen=True)
class PendingTag:
    """A label the user entered that has no durable id yet."""
    label: str
    temp_id: str


@dataclass(frozen=True)
class PersistedTag:
    """A label backed by a Tag row."""
    id: uuid.UUID
    label: str


TagDraft = Union[PendingTag, PersistedTag]


class TagReconciler:
    """
    Turn tag drafts into FileTag links.

    Reconciliation Algorithm:
    1. Normalize: trim whitespace, lowercase
    2. Drop empty labels, de-duplicate by normalized label (first wins)
    3. Resolve: persisted claims must exist; pending labels reuse a
       case-insensitive match or create a new Tag
    4. Link: one FileTag per tag the file does not already carry
       (by id or by normalized label)

    Steps 3 and 4 run in one transaction, so a failure leaves no partial links.
    """

    @staticmethod
    def normalize(label) -> str:
        return (label or '').strip().lower()

    @classmethod
    def parse(cls, items: Iterable) -> List[TagDraft]:
        """
        Build drafts from raw request input.

        Args:
            items: Plain label strings, or {'id': ..., 'tag': ...} dicts as
                produced by the tag input (ids prefixed 'temp-' are unsaved)

        Returns:
            list: PendingTags unique by normalized label, PersistedTags unique by id
        """
        drafts = []
        seen_labels = set()
        seen_ids = set()

        for item in items or []:
            if isinstance(item, dict):
                raw_id = item.get('id')
                label = cls.normalize(item.get('tag'))
            else:
                raw_id = None
                label = cls.normalize(item)

            if not label:
                logger.debug("Skipping empty tag label")
                continue

            if not raw_id or is_temp_id(raw_id):
                if label in seen_labels:
                    continue
                seen_labels.add(label)
                drafts.append(PendingTag(label=label, temp_id=raw_id or new_temp_id()))
                continue

            # Claimed ids keep their stored label, which resolve and link compare
            try:
                tag_id = uuid.UUID(str(raw_id))
            except ValueError:
                raise TagNotFoundError(f"Tag {raw_id} not found")
            if tag_id in seen_ids:
                continue
            seen_ids.add(tag_id)
            drafts.append(PersistedTag(id=tag_id, label=label))

        return drafts

    @classmethod
    def resolve(cls, drafts: Iterable[TagDraft]) -> List[PersistedTag]:
        """
        Replace every pending draft with a durable tag.

        Raises:
            TagNotFoundError: If a persisted claim references a missing tag
        """
        resolved = []
        resolved_ids = set()

        for draft in drafts:
            if isinstance(draft, PersistedTag):
                tag = Tag.objects.filter(pk=draft.id).first()
                if tag is None:
                    raise TagNotFoundError(f"Tag {draft.id} not found")
            else:
                tag = Tag.objects.filter(tag__iexact=draft.label).order_by('id').first()
                if tag is None:
                    tag = Tag.objects.create(tag=draft.label)
                    logger.info(f"Created tag '{draft.label}' ({tag.id}) for {draft.temp_id}")

            if tag.id in resolved_ids:
                continue
            resolved_ids.add(tag.id)
            resolved.append(PersistedTag(id=tag.id, label=cls.normalize(tag.tag)))

        return resolved

    @classmethod
    def link(cls, file_record: File, tags: Iterable[TagDraft]) -> List[FileTag]:
        """
        Create missing FileTag links.

        Raises:
            PendingTagError: If any tag still carries a temporary id
        """
        tags = list(tags)
        for tag in tags:
            if not isinstance(tag, PersistedTag):
                raise PendingTagError(f"Tag '{tag.label}' has not been saved")

        current = list(
            FileTag.objects.filter(file=file_record).values_list('tag_id', 'tag__tag')
        )
        linked_ids = {tag_id for tag_id, _ in current}
        linked_labels = {cls.normalize(label) for _, label in current}

        new_links = []
        for tag in tags:
            if tag.id in linked_ids or tag.label in linked_labels:
                continue
            linked_ids.add(tag.id)
            linked_labels.add(tag.label)
            new_links.append(FileTag(file=file_record, tag_id=tag.id))

        FileTag.objects.bulk_create(new_links)
        return new_links

    @classmethod
    def reconcile(cls, file_record: File, items: Iterable) -> List[PersistedTag]:
        """
        Parse, resolve and link tags for a file in one transaction.

        Returns:
            list: The resolved tags (including ones that were already linked)
        """
        drafts = cls.parse(items)
        with transaction.atomic():
            resolved = cls.resolve(drafts)
            links = cls.link(file_record, resolved)

        logger.info(
            f"Reconciled {len(resolved)} tags for file {file_record.id} "
            f"({len(links)} new links)"
        )
        return resolved

    @staticmethod
    def search(query: str, limit: int = SUGGESTION_LIMIT):
        """Tag suggestions: case-insensitive substring match."""
        return Tag.objects.filter(tag__icontains=(query or '').strip()).order_by('tag')[:limit]

    @staticmethod
    def tags_for_file(file_record: File):
        return Tag.objects.filter(file_tags__file=file_record).order_by('tag')

    @staticmethod
    def remove(file_record: File, tag_id) -> None:
        """
        Unlink a tag from a file. The Tag row itself is kept.

        Raises:
            TagNotFoundError: If the file does not carry the tag
        """
        if is_temp_id(tag_id):
            raise TagNotFoundError(f"Tag {tag_id} not found")
        try:
            tag_uuid = uuid.UUID(str(tag_id))
        except ValueError:
            raise TagNotFoundError(f"Tag {tag_id} not found")

        deleted, _ = FileTag.objects.filter(file=file_record, tag_id=tag_uuid).delete()
        if not deleted:
            raise TagNotFoundError(f"Tag {tag_id} is not linked to file {file_record.id}")
        logger.info(f"Removed tag {tag_uuid} from file {file_record.id}")
