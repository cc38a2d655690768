"""
Management command to merge tags that share a normalized label.

Concurrent taggers can both miss the existence check and create the same
label twice. This folds each group into one canonical tag.

Usage:
    python manage.py merge_duplicate_tags
    python manage.py merge_duplicate_tags --dry-run  # Report only
"""

import logging
from collections import defaultdict
from django.core.management.base import BaseCommand
from django.db import transaction
from django.db.models import Count
from contracts.models import FileTag, Tag
from files.services.tags import TagReconciler

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Merge tags whose labels are equal after trimming and lowercasing'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report duplicate groups without changing anything',
        )

    @staticmethod
    def pick_canonical(tags):
        """Prefer an already-normalized label, then the most-linked tag, then the lowest id."""
        return min(
            tags,
            key=lambda tag: (
                tag.tag != TagReconciler.normalize(tag.tag),
                -tag.link_count,
                str(tag.id),
            )
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        groups = defaultdict(list)
        for tag in Tag.objects.annotate(link_count=Count('file_tags')):
            groups[TagReconciler.normalize(tag.tag)].append(tag)

        duplicates = {label: tags for label, tags in groups.items() if len(tags) > 1}
        if not duplicates:
            self.stdout.write(self.style.SUCCESS('No duplicate tags found'))
            return

        merged_tags = 0
        moved_links = 0
        dropped_links = 0

        with transaction.atomic():
            for label, tags in duplicates.items():
                canonical = self.pick_canonical(tags)
                redundant = [tag for tag in tags if tag.id != canonical.id]
                self.stdout.write(
                    f"'{label}': keeping {canonical.id}, merging {len(redundant)} duplicate(s)"
                )
                if dry_run:
                    continue

                linked_files = set(
                    FileTag.objects.filter(tag=canonical).values_list('file_id', flat=True)
                )
                for link in FileTag.objects.filter(tag__in=redundant):
                    if link.file_id in linked_files:
                        link.delete()
                        dropped_links += 1
                    else:
                        link.tag = canonical
                        link.save(update_fields=['tag'])
                        linked_files.add(link.file_id)
                        moved_links += 1

                if canonical.tag != label:
                    canonical.tag = label
                    canonical.save(update_fields=['tag'])

                Tag.objects.filter(id__in=[tag.id for tag in redundant]).delete()
                merged_tags += len(redundant)

        if dry_run:
            self.stdout.write(
                self.style.WARNING(f'Dry run: {len(duplicates)} duplicate group(s) found, nothing changed')
            )
            return

        logger.info(
            f"Merged {merged_tags} duplicate tags: {moved_links} links moved, "
            f"{dropped_links} redundant links dropped"
        )
        self.stdout.write(self.style.SUCCESS(
            f'Merged {merged_tags} duplicate tag(s) across {len(duplicates)} label(s)'
        ))
