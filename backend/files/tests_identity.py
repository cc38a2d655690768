"""
Unit Tests for Wallet Identity Resolution
=========================================
Tests cover:
- First connect creates a user with zero points
- Repeated connects reuse the same user
- Losing a concurrent create is treated as success
- Blank addresses are rejected before any query
- Wallet session authentication
"""

from unittest.mock import patch
from django.test import TestCase, RequestFactory
from rest_framework import exceptions
from contracts.models import User
from files.authentication import WalletAuthentication, WalletSession
from files.exceptions import WalletRequiredError
from files.services import IdentityService


class IdentityServiceTests(TestCase):
    """Tests for IdentityService.resolve."""

    def test_resolve_creates_user_on_first_sight(self):
        """A new wallet should get a user with zero reward points."""
        user, created = IdentityService.resolve('0xABC')

        self.assertTrue(created)
        self.assertEqual(user.wallet_address, '0xABC')
        self.assertEqual(user.reward_points, 0)
        self.assertEqual(User.objects.count(), 1)

    def test_resolve_is_idempotent(self):
        """Resolving the same address twice should yield one row."""
        first, created_first = IdentityService.resolve('0xABC')
        second, created_second = IdentityService.resolve('0xABC')

        self.assertTrue(created_first)
        self.assertFalse(created_second)
        self.assertEqual(first.id, second.id)
        self.assertEqual(User.objects.filter(wallet_address='0xABC').count(), 1)

    def test_resolve_trims_whitespace(self):
        user, _ = IdentityService.resolve('  0xABC  ')

        self.assertEqual(user.wallet_address, '0xABC')

    def test_resolve_treats_duplicate_key_as_success(self):
        """
        Simulate the losing writer of a concurrent connect: the lookup misses,
        the insert hits the unique constraint, and the re-query finds the winner.
        """
        winner = User.objects.create(wallet_address='0xRACE')

        with patch.object(IdentityService, '_lookup', side_effect=[None, winner]):
            user, created = IdentityService.resolve('0xRACE')

        self.assertFalse(created)
        self.assertEqual(user.id, winner.id)
        self.assertEqual(User.objects.filter(wallet_address='0xRACE').count(), 1)

    def test_resolve_blank_address_raises_without_queries(self):
        with self.assertNumQueries(0):
            with self.assertRaises(WalletRequiredError):
                IdentityService.resolve('   ')

    def test_resolve_none_address_raises(self):
        with self.assertRaises(WalletRequiredError):
            IdentityService.resolve(None)

    def test_distinct_addresses_get_distinct_users(self):
        a, _ = IdentityService.resolve('0xAAA')
        b, _ = IdentityService.resolve('0xBBB')

        self.assertNotEqual(a.id, b.id)
        self.assertEqual(User.objects.count(), 2)


class WalletAuthenticationTests(TestCase):
    """Tests for the X-Wallet-Address authentication class."""

    def setUp(self):
        self.factory = RequestFactory()
        self.auth = WalletAuthentication()

    def test_missing_header_is_anonymous(self):
        request = self.factory.get('/api/files/')

        self.assertIsNone(self.auth.authenticate(request))
        self.assertEqual(User.objects.count(), 0)

    def test_header_resolves_session(self):
        request = self.factory.get('/api/files/', HTTP_X_WALLET_ADDRESS='0xABC')

        session, _ = self.auth.authenticate(request)

        self.assertIsInstance(session, WalletSession)
        self.assertTrue(session.is_authenticated)
        self.assertEqual(session.wallet_address, '0xABC')
        self.assertEqual(session.user_id, User.objects.get(wallet_address='0xABC').id)

    def test_blank_header_fails_authentication(self):
        request = self.factory.get('/api/files/', HTTP_X_WALLET_ADDRESS='  ')

        with self.assertRaises(exceptions.AuthenticationFailed):
            self.auth.authenticate(request)
