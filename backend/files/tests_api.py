"""
API Tests for the Catalogue Endpoints
=====================================
Tests cover:
- Wallet connect and the connected user's balance
- Tagging a file end to end (tags, links, reward)
- Voting, withdrawing and vote tallies
- Listing with filters, vote sorting and pagination
- Tag editing and tag suggestions
- Comments and reports
- Wallet-required and not-found responses
"""

import uuid
from unittest.mock import patch
from django.test import override_settings
from rest_framework import status
from rest_framework.test import APITestCase
from contracts.models import Comment, File, FileTag, Report, Tag, User, Vote
from files.services import BonusRandomnessService


class CatalogAPITestCase(APITestCase):

    def setUp(self):
        patcher = patch.object(BonusRandomnessService, 'get_bonus', return_value=7)
        self.mock_bonus = patcher.start()
        self.addCleanup(patcher.stop)

    def _wallet(self, address):
        return {'HTTP_X_WALLET_ADDRESS': address}

    def _tag_file(self, address='0xABC', tags=None, **fields):
        payload = {
            'filecoin_hash': f'bafy-{uuid.uuid4().hex}',
            'file_name': 'demo.png',
            'file_type': 'image/png',
            'file_size': 1024,
            'network': 'mainnet',
            'tags': tags if tags is not None else [],
        }
        payload.update(fields)
        return self.client.post('/api/files/', payload, format='json', **self._wallet(address))

    def _points(self, address):
        return User.objects.get(wallet_address=address).reward_points


class TaggingFlowTests(CatalogAPITestCase):
    """The connect -> tag -> vote -> withdraw walkthrough."""

    def test_end_to_end_tagging_and_voting(self):
        response = self.client.post('/api/wallet/connect/', {'wallet_address': '0xABC'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['reward_points'], 0)

        response = self._tag_file(tags=['demo', 'Demo'])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['reward_points_awarded'], 17)
        self.assertEqual([tag['tag'] for tag in response.data['tags']], ['demo'])
        self.assertEqual(Tag.objects.count(), 1)
        self.assertEqual(FileTag.objects.count(), 1)
        self.assertEqual(self._points('0xABC'), 17)
        file_id = response.data['id']

        response = self.client.post(
            f'/api/files/{file_id}/vote/', {'vote_type': 1}, format='json', **self._wallet('0xDEF')
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['net_votes'], 1)
        self.assertEqual(response.data['transition'], 'created')
        self.assertEqual(self._points('0xABC'), 19)

        response = self.client.post(
            f'/api/files/{file_id}/vote/', {'vote_type': 1}, format='json', **self._wallet('0xDEF')
        )
        self.assertEqual(response.data['net_votes'], 0)
        self.assertEqual(response.data['transition'], 'withdrawn')
        self.assertIsNone(response.data['vote_type'])
        self.assertEqual(self._points('0xABC'), 17)

    def test_connect_existing_wallet_returns_200(self):
        self.client.post('/api/wallet/connect/', {'wallet_address': '0xABC'}, format='json')
        response = self.client.post('/api/wallet/connect/', {'wallet_address': '0xABC'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(User.objects.count(), 1)

    def test_connect_without_address_is_rejected(self):
        response = self.client.post('/api/wallet/connect/', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(User.objects.count(), 0)

    def test_current_user_reports_balance(self):
        self._tag_file()

        response = self.client.get('/api/users/me/', **self._wallet('0xABC'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['wallet_address'], '0xABC')
        self.assertEqual(response.data['reward_points'], 17)

    def test_temp_ids_never_reach_the_store(self):
        response = self._tag_file(tags=[{'id': 'temp-1700000000000', 'tag': 'Fresh'}])

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        tag = response.data['tags'][0]
        self.assertEqual(tag['tag'], 'fresh')
        self.assertFalse(str(tag['id']).startswith('temp-'))

    def test_missing_hash_is_rejected(self):
        response = self._tag_file(filecoin_hash='  ')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(File.objects.count(), 0)

    def test_blank_optional_fields_are_stored_as_null(self):
        response = self._tag_file(description='', thumbnail_url='')

        file_record = File.objects.get(pk=response.data['id'])
        self.assertIsNone(file_record.description)
        self.assertIsNone(file_record.thumbnail_url)

    @override_settings(REWARDS_ASYNC_BONUS=True)
    @patch('files.tasks.award_tagging_reward')
    def test_async_reward_is_queued(self, mock_task):
        response = self._tag_file()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['reward_points_awarded'])
        mock_task.delay.assert_called_once()
        self.assertEqual(self._points('0xABC'), 0)

    @patch('files.services.points.PointsLedger.award_tagging', side_effect=RuntimeError('ledger down'))
    def test_reward_failure_keeps_the_file(self, mock_award):
        response = self._tag_file(tags=['kept'])

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['reward_points_awarded'])
        self.assertEqual(File.objects.count(), 1)


class WalletRequiredTests(CatalogAPITestCase):
    """Writes without a connected wallet are rejected before any change."""

    def setUp(self):
        super().setUp()
        self.owner = User.objects.create(wallet_address='0xOWNER')
        self.file = File.objects.create(
            filecoin_hash='bafy-guarded', file_type='text/plain',
            file_size=1, network='mainnet', owner=self.owner
        )

    def test_tagging_requires_wallet(self):
        response = self.client.post('/api/files/', {
            'filecoin_hash': 'bafy-anon', 'file_type': 'text/plain', 'file_size': 1, 'network': 'mainnet'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(File.objects.count(), 1)

    def test_vote_requires_wallet(self):
        response = self.client.post(f'/api/files/{self.file.id}/vote/', {'vote_type': 1}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(Vote.objects.count(), 0)

    def test_comment_requires_wallet(self):
        response = self.client.post(
            f'/api/files/{self.file.id}/comments/', {'comment': 'hi'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_blank_wallet_header_is_unauthorized(self):
        response = self.client.post(
            f'/api/files/{self.file.id}/vote/', {'vote_type': 1}, format='json', **self._wallet('   ')
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_current_user_requires_wallet(self):
        response = self.client.get('/api/users/me/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_reads_are_public(self):
        self.assertEqual(self.client.get('/api/files/').status_code, status.HTTP_200_OK)
        self.assertEqual(
            self.client.get(f'/api/files/{self.file.id}/votes/').status_code, status.HTTP_200_OK
        )
        self.assertEqual(
            self.client.get(f'/api/files/{self.file.id}/comments/').status_code, status.HTTP_200_OK
        )


class VoteEndpointTests(CatalogAPITestCase):

    def setUp(self):
        super().setUp()
        self.file_id = self._tag_file().data['id']

    def test_invalid_vote_type_is_rejected(self):
        response = self.client.post(
            f'/api/files/{self.file_id}/vote/', {'vote_type': 0}, format='json', **self._wallet('0xDEF')
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Vote.objects.count(), 0)

    def test_vote_on_unknown_file_is_not_found(self):
        response = self.client.post(
            f'/api/files/{uuid.uuid4()}/vote/', {'vote_type': 1}, format='json', **self._wallet('0xDEF')
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn('error', response.data)

    def test_switch_vote_keeps_single_row(self):
        headers = self._wallet('0xDEF')
        self.client.post(f'/api/files/{self.file_id}/vote/', {'vote_type': 1}, format='json', **headers)
        response = self.client.post(
            f'/api/files/{self.file_id}/vote/', {'vote_type': -1}, format='json', **headers
        )

        self.assertEqual(response.data['transition'], 'switched')
        self.assertEqual(response.data['downvotes'], 1)
        self.assertEqual(response.data['upvotes'], 0)
        self.assertEqual(Vote.objects.count(), 1)
        self.assertEqual(self._points('0xABC'), 17 - 1)

    def test_votes_tally_includes_callers_vote(self):
        self.client.post(
            f'/api/files/{self.file_id}/vote/', {'vote_type': -1}, format='json', **self._wallet('0xDEF')
        )

        mine = self.client.get(f'/api/files/{self.file_id}/votes/', **self._wallet('0xDEF'))
        anonymous = self.client.get(f'/api/files/{self.file_id}/votes/')

        self.assertEqual(mine.data['user_vote'], -1)
        self.assertEqual(mine.data['net_votes'], -1)
        self.assertIsNone(anonymous.data['user_vote'])


class FileListingTests(CatalogAPITestCase):

    def setUp(self):
        super().setUp()
        self.owner = User.objects.create(wallet_address='0xOWNER')

    def _create_file(self, name, description=None, file_type='text/plain', tags=()):
        file_record = File.objects.create(
            filecoin_hash=f'bafy-{uuid.uuid4().hex}', file_name=name, description=description,
            file_type=file_type, file_size=10, network='mainnet', owner=self.owner
        )
        for label in tags:
            tag = Tag.objects.filter(tag=label).first() or Tag.objects.create(tag=label)
            FileTag.objects.create(file=file_record, tag=tag)
        return file_record

    def _vote(self, file_record, *vote_types):
        for vote_type in vote_types:
            voter = User.objects.create(wallet_address=f'0x{uuid.uuid4().hex}')
            Vote.objects.create(file=file_record, user=voter, vote_type=vote_type)

    def test_search_matches_name_or_description(self):
        self._create_file('annual_report.pdf')
        self._create_file('notes.txt', description='Quarterly REPORT draft')
        self._create_file('photo.png')

        response = self.client.get('/api/files/', {'search': 'report'})

        self.assertEqual(response.data['count'], 2)

    def test_filter_by_tag_label_is_case_insensitive(self):
        self._create_file('a.txt', tags=['art'])
        self._create_file('b.txt', tags=['music'])

        response = self.client.get('/api/files/', {'tag': 'ART'})

        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['file_name'], 'a.txt')

    def test_filter_by_tag_ids_any_of(self):
        self._create_file('a.txt', tags=['art'])
        self._create_file('b.txt', tags=['music', 'art'])
        self._create_file('c.txt', tags=['video'])
        art, music = Tag.objects.get(tag='art'), Tag.objects.get(tag='music')

        response = self.client.get(f'/api/files/?tags={art.id}&tags={music.id}')

        self.assertEqual(response.data['count'], 2)

    def test_filter_by_file_type(self):
        self._create_file('a.pdf', file_type='application/pdf')
        self._create_file('b.txt')

        response = self.client.get('/api/files/', {'file_type': 'application/pdf'})

        self.assertEqual(response.data['count'], 1)

    def test_sort_by_net_votes(self):
        low = self._create_file('low.txt')
        high = self._create_file('high.txt')
        middle = self._create_file('middle.txt')
        self._vote(low, -1, -1)
        self._vote(high, 1, 1, 1, -1)
        self._vote(middle, 1)

        response = self.client.get('/api/files/', {'ordering': '-net_votes'})

        names = [item['file_name'] for item in response.data['results']]
        self.assertEqual(names, ['high.txt', 'middle.txt', 'low.txt'])
        self.assertEqual(response.data['results'][0]['net_votes'], 2)
        self.assertEqual(response.data['results'][0]['upvotes'], 3)

    def test_counts_are_not_inflated_by_tags(self):
        file_record = self._create_file('tagged.txt', tags=['a', 'b', 'c'])
        self._vote(file_record, 1, 1)

        response = self.client.get(f'/api/files/{file_record.id}/')

        self.assertEqual(response.data['upvotes'], 2)
        self.assertEqual(len(response.data['tags']), 3)

    def test_pagination(self):
        for i in range(12):
            self._create_file(f'file{i}.txt')

        first = self.client.get('/api/files/')
        second = self.client.get('/api/files/', {'limit': 5, 'offset': 10})

        self.assertEqual(first.data['count'], 12)
        self.assertEqual(len(first.data['results']), 10)
        self.assertIsNotNone(first.data['next'])
        self.assertEqual(len(second.data['results']), 2)

    def test_retrieve_unknown_file(self):
        response = self.client.get(f'/api/files/{uuid.uuid4()}/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TagEndpointTests(CatalogAPITestCase):

    def setUp(self):
        super().setUp()
        self.file_id = self._tag_file(tags=['first']).data['id']

    def test_add_tags_to_existing_file(self):
        response = self.client.post(
            f'/api/files/{self.file_id}/tags/', {'tags': ['Second', 'first']},
            format='json', **self._wallet('0xDEF')
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([tag['tag'] for tag in response.data['tags']], ['first', 'second'])
        self.assertEqual(FileTag.objects.count(), 2)
        # Editing tags is not rewarded
        self.assertEqual(self._points('0xDEF'), 0)

    def test_add_empty_tag_list_is_rejected(self):
        response = self.client.post(
            f'/api/files/{self.file_id}/tags/', {'tags': []}, format='json', **self._wallet('0xABC')
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_remove_tag_then_not_found(self):
        tag_id = Tag.objects.get(tag='first').id
        url = f'/api/files/{self.file_id}/tags/{tag_id}/'

        response = self.client.delete(url, **self._wallet('0xABC'))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(FileTag.objects.count(), 0)
        self.assertTrue(Tag.objects.filter(id=tag_id).exists())

        response = self.client.delete(url, **self._wallet('0xABC'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_tag_suggestions(self):
        for label in ['firmware', 'fireworks', 'water']:
            Tag.objects.create(tag=label)

        response = self.client.get('/api/tags/', {'search': 'FIR'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([tag['tag'] for tag in response.data], ['fireworks', 'firmware', 'first'])


class EngagementEndpointTests(CatalogAPITestCase):

    def setUp(self):
        super().setUp()
        self.file_id = self._tag_file().data['id']

    def _comment(self, address, text):
        return self.client.post(
            f'/api/files/{self.file_id}/comments/', {'comment': text},
            format='json', **self._wallet(address)
        )

    def test_comments_are_listed_oldest_first(self):
        self._comment('0xDEF', 'first!')
        self._comment('0xABC', 'thanks')

        response = self.client.get(f'/api/files/{self.file_id}/comments/')

        self.assertEqual([c['comment'] for c in response.data], ['first!', 'thanks'])
        self.assertEqual(response.data[0]['wallet_address'], '0xDEF')

    def test_empty_comment_is_rejected(self):
        response = self._comment('0xDEF', '   ')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Comment.objects.count(), 0)

    def test_non_string_comment_is_rejected(self):
        response = self._comment('0xDEF', 123)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid comment')
        self.assertEqual(Comment.objects.count(), 0)

    def test_non_object_comment_body_is_rejected(self):
        response = self.client.post(
            f'/api/files/{self.file_id}/comments/', [], format='json', **self._wallet('0xDEF')
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Comment.objects.count(), 0)

    def test_comment_on_unknown_file_is_not_found(self):
        response = self.client.post(
            f'/api/files/{uuid.uuid4()}/comments/', {'comment': 'hello'},
            format='json', **self._wallet('0xDEF')
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_comment_count_in_listing(self):
        self._comment('0xDEF', 'one')
        self._comment('0xDEF', 'two')

        response = self.client.get(f'/api/files/{self.file_id}/')

        self.assertEqual(response.data['comment_count'], 2)

    def test_only_author_can_delete_comment(self):
        comment_id = self._comment('0xDEF', 'mine').data['id']

        forbidden = self.client.delete(f'/api/comments/{comment_id}/', **self._wallet('0xABC'))
        self.assertEqual(forbidden.status_code, status.HTTP_403_FORBIDDEN)

        deleted = self.client.delete(f'/api/comments/{comment_id}/', **self._wallet('0xDEF'))
        self.assertEqual(deleted.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(Comment.objects.count(), 0)

    def test_delete_unknown_comment(self):
        response = self.client.delete(f'/api/comments/{uuid.uuid4()}/', **self._wallet('0xABC'))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_report_file(self):
        response = self.client.post(
            f'/api/files/{self.file_id}/report/', {'report_reason': 'spam'},
            format='json', **self._wallet('0xDEF')
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        report = Report.objects.get()
        self.assertEqual(report.report_reason, 'spam')
        self.assertEqual(report.user.wallet_address, '0xDEF')

    def test_report_without_reason(self):
        response = self.client.post(
            f'/api/files/{self.file_id}/report/', {}, format='json', **self._wallet('0xDEF')
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(Report.objects.get().report_reason)
