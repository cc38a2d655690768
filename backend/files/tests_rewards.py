"""
Unit Tests for Reward Points and Beacon Bonus
=============================================
Tests cover:
- Points ledger deltas (positive, negative, unknown user)
- Atomic increments do not lose concurrent updates
- Tagging reward = TAG_FILE + bonus
- Beacon fetch, seed derivation and LCG determinism
- Degradation to seed 0 when the beacon is unreachable
"""

from unittest.mock import Mock, patch
import uuid
import requests
from django.test import SimpleTestCase, TestCase, override_settings
from contracts.models import User
from files.exceptions import UserNotFoundError
from files.services import BonusRandomnessService, PointsLedger
from files.services.points import get_reward_points


class PointsLedgerTests(TestCase):
    """Tests for PointsLedger."""

    def setUp(self):
        self.user = User.objects.create(wallet_address='0xABC')

    def test_apply_positive_delta(self):
        balance = PointsLedger.apply_delta(self.user.id, 5)

        self.user.refresh_from_db()
        self.assertEqual(balance, 5)
        self.assertEqual(self.user.reward_points, 5)

    def test_apply_negative_delta_can_go_below_zero(self):
        """Balances are not validated non-negative."""
        balance = PointsLedger.apply_delta(self.user.id, -3)

        self.assertEqual(balance, -3)

    def test_apply_delta_unknown_user_raises(self):
        with self.assertRaises(UserNotFoundError):
            PointsLedger.apply_delta(uuid.uuid4(), 5)

    def test_stale_instance_does_not_lose_updates(self):
        """Two deltas issued from the same stale read should both land."""
        stale = User.objects.get(pk=self.user.id)

        PointsLedger.apply_delta(stale.id, 2)
        PointsLedger.apply_delta(stale.id, 2)

        self.assertEqual(stale.reward_points, 0)
        self.assertEqual(PointsLedger.get_balance(self.user.id), 4)

    def test_get_balance_unknown_user_raises(self):
        with self.assertRaises(UserNotFoundError):
            PointsLedger.get_balance(uuid.uuid4())

    @patch.object(BonusRandomnessService, 'get_bonus', return_value=42)
    def test_award_tagging_adds_fixed_amount_plus_bonus(self, mock_bonus):
        awarded = PointsLedger.award_tagging(self.user.id)

        self.assertEqual(awarded, 10 + 42)
        self.assertEqual(PointsLedger.get_balance(self.user.id), 52)
        mock_bonus.assert_called_once()

    @override_settings(REWARD_POINTS={'TAG_FILE': 25})
    @patch.object(BonusRandomnessService, 'get_bonus', return_value=0)
    def test_award_tagging_uses_configured_amount(self, mock_bonus):
        awarded = PointsLedger.award_tagging(self.user.id)

        self.assertEqual(awarded, 25)

    @override_settings(REWARD_POINTS={'TAG_FILE': 25})
    def test_missing_reward_names_fall_back_to_defaults(self):
        self.assertEqual(get_reward_points('TAG_FILE'), 25)
        self.assertEqual(get_reward_points('UPVOTE_RECEIVED'), 2)
        self.assertEqual(get_reward_points('DOWNVOTE_RECEIVED'), -1)


class BonusRandomnessServiceTests(SimpleTestCase):
    """Tests for the drand-derived bonus."""

    def _beacon_response(self, randomness):
        response = Mock()
        response.json.return_value = {'round': 1, 'randomness': randomness}
        response.raise_for_status.return_value = None
        return response

    # ===================
    # Seed / LCG Tests
    # ===================

    def test_hex_to_seed_uses_first_32_bits(self):
        self.assertEqual(BonusRandomnessService.hex_to_seed('deadbeefcafe'), 0xdeadbeef)

    def test_hex_to_seed_empty_is_zero(self):
        self.assertEqual(BonusRandomnessService.hex_to_seed(''), 0)

    def test_hex_to_seed_invalid_is_zero(self):
        self.assertEqual(BonusRandomnessService.hex_to_seed('zzzz'), 0)

    def test_lcg_is_deterministic(self):
        first = BonusRandomnessService.lcg(1234)
        second = BonusRandomnessService.lcg(1234)

        self.assertEqual([next(first) for _ in range(5)], [next(second) for _ in range(5)])

    def test_lcg_samples_are_unit_interval(self):
        generator = BonusRandomnessService.lcg(0xffffffff)
        for _ in range(100):
            sample = next(generator)
            self.assertGreaterEqual(sample, 0.0)
            self.assertLess(sample, 1.0)

    def test_bonus_for_known_seeds(self):
        # seed 0 -> 1013904223 / 2^32 ~= 0.236
        self.assertEqual(BonusRandomnessService.bonus_from_randomness(''), 23)
        # seed 2^31 -> 3161387871 / 2^32 ~= 0.736
        self.assertEqual(BonusRandomnessService.bonus_from_randomness('80000000ab'), 73)

    # ===================
    # Beacon Fetch Tests
    # ===================

    @patch('files.services.randomness.requests.get')
    def test_fetch_returns_beacon_randomness(self, mock_get):
        mock_get.return_value = self._beacon_response('abcdef0123')

        self.assertEqual(BonusRandomnessService.fetch_latest_randomness(), 'abcdef0123')
        url = mock_get.call_args[0][0]
        self.assertTrue(url.endswith('/public/latest'))

    @override_settings(DRAND_CHAIN_URL='https://drand.example/', DRAND_NO_CACHE=True)
    @patch('files.services.randomness.requests.get')
    def test_fetch_honours_endpoint_and_cache_toggle(self, mock_get):
        mock_get.return_value = self._beacon_response('00')

        BonusRandomnessService.fetch_latest_randomness()

        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], 'https://drand.example/public/latest')
        self.assertEqual(kwargs['headers'], {'Cache-Control': 'no-cache'})

    @patch('files.services.randomness.requests.get')
    def test_fetch_failure_returns_empty_string(self, mock_get):
        mock_get.side_effect = requests.ConnectionError('beacon down')

        self.assertEqual(BonusRandomnessService.fetch_latest_randomness(), '')

    @patch('files.services.randomness.requests.get')
    def test_fetch_bad_json_returns_empty_string(self, mock_get):
        response = self._beacon_response(None)
        response.json.side_effect = ValueError('not json')
        mock_get.return_value = response

        self.assertEqual(BonusRandomnessService.fetch_latest_randomness(), '')

    @patch('files.services.randomness.requests.get')
    def test_get_bonus_is_bounded_and_deterministic(self, mock_get):
        mock_get.return_value = self._beacon_response('9f86d081884c7d65')

        first = BonusRandomnessService.get_bonus()
        second = BonusRandomnessService.get_bonus()

        self.assertIsInstance(first, int)
        self.assertGreaterEqual(first, 0)
        self.assertLess(first, 100)
        self.assertEqual(first, second)

    @patch('files.services.randomness.requests.get')
    def test_get_bonus_degrades_when_beacon_unreachable(self, mock_get):
        mock_get.side_effect = requests.Timeout('slow beacon')

        self.assertEqual(BonusRandomnessService.get_bonus(), 23)
