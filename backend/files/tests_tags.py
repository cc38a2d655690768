"""
Unit Tests for Tag Reconciliation
=================================
Tests cover:
- Label normalization and in-request de-duplication
- Reuse of existing tags by case-insensitive match
- Temporary ids resolved before linking, never persisted
- No duplicate FileTag links
- Whole-operation abort on failure
- Tag removal and suggestions
"""

import uuid
from unittest.mock import patch
from django.db import DatabaseError
from django.test import TestCase
from contracts.models import File, FileTag, Tag, User
from files.authentication import WalletSession
from files.exceptions import PendingTagError, TagNotFoundError
from files.services import CatalogService, PendingTag, PersistedTag, TagReconciler
from files.services.tags import is_temp_id, new_temp_id


class TagReconcilerTestMixin:

    def setUp(self):
        self.user = User.objects.create(wallet_address='0xABC')
        self.file = self._create_file()

    def _create_file(self, name='demo.png'):
        return File.objects.create(
            filecoin_hash=f'bafy-{uuid.uuid4().hex}',
            file_name=name,
            file_type='image/png',
            file_size=1024,
            network='mainnet',
            owner=self.user,
        )

    def _linked_labels(self, file_record=None):
        file_record = file_record or self.file
        return sorted(
            FileTag.objects.filter(file=file_record).values_list('tag__tag', flat=True)
        )


class TagParsingTests(TagReconcilerTestMixin, TestCase):
    """Tests for normalization and draft parsing."""

    def test_normalize_trims_and_lowercases(self):
        self.assertEqual(TagReconciler.normalize('  Art  '), 'art')
        self.assertEqual(TagReconciler.normalize(None), '')

    def test_parse_deduplicates_by_normalized_label(self):
        drafts = TagReconciler.parse(['Art', 'art', ' ART '])

        self.assertEqual(len(drafts), 1)
        self.assertIsInstance(drafts[0], PendingTag)
        self.assertEqual(drafts[0].label, 'art')

    def test_parse_drops_empty_labels(self):
        drafts = TagReconciler.parse(['', '   ', 'photo'])

        self.assertEqual([d.label for d in drafts], ['photo'])

    def test_parse_temp_id_draft_is_pending(self):
        drafts = TagReconciler.parse([{'id': 'temp-1700000000000', 'tag': 'New'}])

        self.assertIsInstance(drafts[0], PendingTag)
        self.assertEqual(drafts[0].temp_id, 'temp-1700000000000')
        self.assertEqual(drafts[0].label, 'new')

    def test_parse_durable_id_draft_is_persisted(self):
        tag_id = uuid.uuid4()
        drafts = TagReconciler.parse([{'id': str(tag_id), 'tag': 'Old'}])

        self.assertIsInstance(drafts[0], PersistedTag)
        self.assertEqual(drafts[0].id, tag_id)

    def test_parse_deduplicates_persisted_claims_by_id(self):
        tag_id = uuid.uuid4()
        drafts = TagReconciler.parse([
            {'id': str(tag_id), 'tag': 'Old'},
            {'id': str(tag_id), 'tag': 'Renamed'},
            'old',
        ])

        self.assertEqual(len(drafts), 2)
        self.assertIsInstance(drafts[0], PersistedTag)
        self.assertIsInstance(drafts[1], PendingTag)

    def test_parse_malformed_id_raises_not_found(self):
        with self.assertRaises(TagNotFoundError):
            TagReconciler.parse([{'id': 'not-a-uuid', 'tag': 'x'}])

    def test_new_temp_ids_are_prefixed_and_unique(self):
        ids = {new_temp_id() for _ in range(50)}

        self.assertEqual(len(ids), 50)
        self.assertTrue(all(is_temp_id(tag_id) for tag_id in ids))


class TagReconcileTests(TagReconcilerTestMixin, TestCase):
    """Tests for resolve/link/reconcile against the database."""

    def test_case_variants_create_one_tag_and_one_link(self):
        resolved = TagReconciler.reconcile(self.file, ['Art', 'art', ' ART '])

        self.assertEqual(len(resolved), 1)
        self.assertEqual(Tag.objects.count(), 1)
        self.assertEqual(Tag.objects.get().tag, 'art')
        self.assertEqual(FileTag.objects.filter(file=self.file).count(), 1)

    def test_existing_tag_is_reused_case_insensitively(self):
        existing = Tag.objects.create(tag='Demo')

        resolved = TagReconciler.reconcile(self.file, ['demo'])

        self.assertEqual(Tag.objects.count(), 1)
        self.assertEqual(resolved[0].id, existing.id)
        self.assertEqual(resolved[0].label, 'demo')

    def test_temp_ids_are_replaced_with_durable_ids(self):
        resolved = TagReconciler.reconcile(
            self.file,
            [{'id': 'temp-1', 'tag': 'alpha'}, {'id': 'temp-2', 'tag': 'beta'}]
        )

        self.assertTrue(all(isinstance(tag, PersistedTag) for tag in resolved))
        stored_ids = set(FileTag.objects.values_list('tag_id', flat=True))
        self.assertEqual(stored_ids, {tag.id for tag in resolved})
        self.assertFalse(any(is_temp_id(tag_id) for tag_id in stored_ids))

    def test_persisted_claim_links_existing_tag(self):
        tag = Tag.objects.create(tag='archive')

        TagReconciler.reconcile(self.file, [{'id': str(tag.id), 'tag': 'archive'}])

        self.assertTrue(FileTag.objects.filter(file=self.file, tag=tag).exists())

    def test_persisted_claim_label_does_not_shadow_plain_label(self):
        """A claim whose sent label differs from the stored one must not drop a plain label."""
        music = Tag.objects.create(tag='music')

        TagReconciler.reconcile(self.file, [{'id': str(music.id), 'tag': 'Art'}, 'art'])

        self.assertEqual(self._linked_labels(), ['art', 'music'])

    def test_persisted_claim_for_missing_tag_raises(self):
        with self.assertRaises(TagNotFoundError):
            TagReconciler.reconcile(self.file, [{'id': str(uuid.uuid4()), 'tag': 'ghost'}])

        self.assertEqual(FileTag.objects.count(), 0)

    def test_link_refuses_pending_tags(self):
        with self.assertRaises(PendingTagError):
            TagReconciler.link(self.file, [PendingTag(label='draft', temp_id='temp-9')])

        self.assertEqual(FileTag.objects.count(), 0)

    def test_already_linked_tag_is_not_relinked(self):
        TagReconciler.reconcile(self.file, ['music'])
        TagReconciler.reconcile(self.file, ['Music', 'jazz'])

        self.assertEqual(self._linked_labels(), ['jazz', 'music'])
        self.assertEqual(FileTag.objects.filter(file=self.file).count(), 2)

    def test_duplicate_tag_rows_do_not_produce_duplicate_labels(self):
        """A file linked to one 'art' row should not gain a second 'art' row."""
        upper = Tag.objects.create(tag='ART')
        Tag.objects.create(tag='art')
        FileTag.objects.create(file=self.file, tag=upper)

        TagReconciler.reconcile(self.file, ['art'])

        self.assertEqual(FileTag.objects.filter(file=self.file).count(), 1)

    def test_same_tag_links_to_many_files(self):
        other = self._create_file('other.png')

        TagReconciler.reconcile(self.file, ['shared'])
        TagReconciler.reconcile(other, ['SHARED'])

        self.assertEqual(Tag.objects.count(), 1)
        self.assertEqual(FileTag.objects.count(), 2)

    def test_failure_aborts_whole_tagging_operation(self):
        """A failing tag create must leave no file and no links behind."""
        Tag.objects.create(tag='existing')
        session = WalletSession(wallet_address=self.user.wallet_address, user=self.user)
        file_data = {
            'filecoin_hash': 'bafy-abort',
            'file_type': 'text/plain',
            'file_size': 10,
            'network': 'mainnet',
        }

        with patch.object(Tag.objects, 'create', side_effect=DatabaseError('insert failed')):
            with self.assertRaises(DatabaseError):
                CatalogService.tag_file(session, file_data, ['existing', 'brand-new'])

        self.assertFalse(File.objects.filter(filecoin_hash='bafy-abort').exists())
        self.assertEqual(FileTag.objects.count(), 0)


class TagMaintenanceTests(TagReconcilerTestMixin, TestCase):
    """Tests for removal and suggestions."""

    def test_remove_unlinks_but_keeps_tag(self):
        resolved = TagReconciler.reconcile(self.file, ['keep'])

        TagReconciler.remove(self.file, resolved[0].id)

        self.assertEqual(FileTag.objects.count(), 0)
        self.assertEqual(Tag.objects.count(), 1)

    def test_remove_unlinked_tag_raises(self):
        tag = Tag.objects.create(tag='loose')

        with self.assertRaises(TagNotFoundError):
            TagReconciler.remove(self.file, tag.id)

    def test_remove_temp_id_raises(self):
        with self.assertRaises(TagNotFoundError):
            TagReconciler.remove(self.file, 'temp-123')

    def test_search_is_case_insensitive_substring(self):
        for label in ['photography', 'photo', 'video']:
            Tag.objects.create(tag=label)

        results = [tag.tag for tag in TagReconciler.search('PHOTO')]

        self.assertEqual(results, ['photo', 'photography'])

    def test_search_is_limited(self):
        for i in range(15):
            Tag.objects.create(tag=f'tag{i:02d}')

        self.assertEqual(len(TagReconciler.search('tag')), 10)

    def test_tags_for_file(self):
        TagReconciler.reconcile(self.file, ['b', 'a'])

        self.assertEqual([tag.tag for tag in TagReconciler.tags_for_file(self.file)], ['a', 'b'])
