"""
Tests for the merge_duplicate_tags management command.
"""

import uuid
from io import StringIO
from django.core.management import call_command
from django.test import TestCase
from contracts.models import File, FileTag, Tag, User


class MergeDuplicateTagsTests(TestCase):

    def setUp(self):
        self.owner = User.objects.create(wallet_address='0xABC')
        self.first = self._create_file()
        self.second = self._create_file()

    def _create_file(self):
        return File.objects.create(
            filecoin_hash=f'bafy-{uuid.uuid4().hex}', file_type='text/plain',
            file_size=1, network='mainnet', owner=self.owner
        )

    def _run(self, *args):
        out = StringIO()
        call_command('merge_duplicate_tags', *args, stdout=out)
        return out.getvalue()

    def test_no_duplicates(self):
        Tag.objects.create(tag='solo')

        output = self._run()

        self.assertIn('No duplicate tags found', output)
        self.assertEqual(Tag.objects.count(), 1)

    def test_merges_links_into_canonical_tag(self):
        canonical = Tag.objects.create(tag='art')
        duplicate = Tag.objects.create(tag='ART')
        FileTag.objects.create(file=self.first, tag=canonical)
        FileTag.objects.create(file=self.second, tag=duplicate)

        self._run()

        self.assertEqual(list(Tag.objects.values_list('tag', flat=True)), ['art'])
        self.assertEqual(FileTag.objects.filter(tag=canonical).count(), 2)

    def test_drops_links_that_would_duplicate(self):
        canonical = Tag.objects.create(tag='music')
        duplicate = Tag.objects.create(tag=' Music ')
        FileTag.objects.create(file=self.first, tag=canonical)
        FileTag.objects.create(file=self.first, tag=duplicate)

        self._run()

        self.assertEqual(FileTag.objects.filter(file=self.first).count(), 1)
        self.assertEqual(Tag.objects.count(), 1)

    def test_canonical_label_is_normalized(self):
        upper = Tag.objects.create(tag='Video')
        Tag.objects.create(tag='VIDEO')
        FileTag.objects.create(file=self.first, tag=upper)

        self._run()

        remaining = Tag.objects.get()
        self.assertEqual(remaining.id, upper.id)
        self.assertEqual(remaining.tag, 'video')

    def test_dry_run_changes_nothing(self):
        Tag.objects.create(tag='photo')
        duplicate = Tag.objects.create(tag='PHOTO')
        FileTag.objects.create(file=self.first, tag=duplicate)

        output = self._run('--dry-run')

        self.assertIn('Dry run', output)
        self.assertEqual(Tag.objects.count(), 2)
        self.assertEqual(FileTag.objects.get().tag_id, duplicate.id)
