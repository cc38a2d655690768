"""
Unit Tests for the Vote Ledger
==============================
Tests cover:
- NoVote -> Voted, Voted -> NoVote (toggle off), Voted -> switched
- Owner reward points after every transition
- Derived tallies
- Precondition and validation failures
- Losing a concurrent first vote
"""

import uuid
from unittest.mock import patch
from django.test import TestCase, override_settings
from contracts.models import File, User, Vote, VoteType
from files.exceptions import (
    FileRecordNotFoundError,
    InvalidVoteError,
    UserNotFoundError,
    WalletRequiredError,
)
from files.services import PointsLedger, VoteLedger
from files.services.votes import CREATED, DOWNVOTED, NO_VOTE, SWITCHED, UPVOTED, WITHDRAWN


class VoteLedgerTests(TestCase):
    """Tests for VoteLedger.cast_vote state machine."""

    def setUp(self):
        self.owner = User.objects.create(wallet_address='0xOWNER', reward_points=100)
        self.voter = User.objects.create(wallet_address='0xVOTER')
        self.file = File.objects.create(
            filecoin_hash='bafy-vote',
            file_name='report.pdf',
            file_type='application/pdf',
            file_size=2048,
            network='mainnet',
            owner=self.owner,
        )

    def _owner_points(self):
        self.owner.refresh_from_db()
        return self.owner.reward_points

    # ===================
    # Transition Tests
    # ===================

    def test_first_upvote_creates_vote_and_rewards_owner(self):
        outcome = VoteLedger.cast_vote(self.file.id, self.voter.id, 1)

        self.assertEqual(outcome.transition, CREATED)
        self.assertEqual(outcome.state, UPVOTED)
        self.assertEqual(outcome.deltas, [2])
        self.assertEqual(Vote.objects.get(file=self.file, user=self.voter).vote_type, 1)
        self.assertEqual(self._owner_points(), 102)

    def test_first_downvote_penalizes_owner(self):
        outcome = VoteLedger.cast_vote(self.file.id, self.voter.id, -1)

        self.assertEqual(outcome.state, DOWNVOTED)
        self.assertEqual(self._owner_points(), 99)

    def test_repeat_upvote_withdraws_and_reverts_points(self):
        VoteLedger.cast_vote(self.file.id, self.voter.id, 1)
        outcome = VoteLedger.cast_vote(self.file.id, self.voter.id, 1)

        self.assertEqual(outcome.transition, WITHDRAWN)
        self.assertEqual(outcome.state, NO_VOTE)
        self.assertIsNone(outcome.vote_type)
        self.assertFalse(Vote.objects.filter(file=self.file, user=self.voter).exists())
        self.assertEqual(self._owner_points(), 100)

    def test_repeat_downvote_withdraws_and_reverts_points(self):
        VoteLedger.cast_vote(self.file.id, self.voter.id, -1)
        VoteLedger.cast_vote(self.file.id, self.voter.id, -1)

        self.assertEqual(Vote.objects.count(), 0)
        self.assertEqual(self._owner_points(), 100)

    def test_switch_up_to_down_updates_in_place(self):
        VoteLedger.cast_vote(self.file.id, self.voter.id, 1)
        vote_id = Vote.objects.get().id

        outcome = VoteLedger.cast_vote(self.file.id, self.voter.id, -1)

        self.assertEqual(outcome.transition, SWITCHED)
        self.assertEqual(outcome.state, DOWNVOTED)
        # Revert the upvote, then apply the downvote
        self.assertEqual(outcome.deltas, [-2, -1])
        vote = Vote.objects.get(file=self.file, user=self.voter)
        self.assertEqual(vote.id, vote_id)
        self.assertEqual(vote.vote_type, -1)
        self.assertEqual(self._owner_points(), 100 - 2 - 1 + 2)

    def test_switch_down_to_up(self):
        VoteLedger.cast_vote(self.file.id, self.voter.id, -1)
        outcome = VoteLedger.cast_vote(self.file.id, self.voter.id, 1)

        self.assertEqual(outcome.deltas, [1, 2])
        self.assertEqual(self._owner_points(), 102)

    def test_upvote_then_downvote_relative_to_baseline(self):
        """Net effect relative to baseline: -UPVOTE_RECEIVED + DOWNVOTE_RECEIVED after the switch."""
        VoteLedger.cast_vote(self.file.id, self.voter.id, 1)
        after_upvote = self._owner_points()
        VoteLedger.cast_vote(self.file.id, self.voter.id, -1)

        self.assertEqual(self._owner_points() - after_upvote, -2 + -1)
        self.assertEqual(Vote.objects.filter(file=self.file, user=self.voter).count(), 1)

    def test_votes_from_different_users_accumulate(self):
        other = User.objects.create(wallet_address='0xOTHER')

        VoteLedger.cast_vote(self.file.id, self.voter.id, 1)
        outcome = VoteLedger.cast_vote(self.file.id, other.id, 1)

        self.assertEqual(outcome.tally.upvotes, 2)
        self.assertEqual(self._owner_points(), 104)

    def test_voter_points_are_untouched(self):
        VoteLedger.cast_vote(self.file.id, self.voter.id, 1)

        self.voter.refresh_from_db()
        self.assertEqual(self.voter.reward_points, 0)

    @override_settings(REWARD_POINTS={'UPVOTE_RECEIVED': 5, 'DOWNVOTE_RECEIVED': -3})
    def test_configured_reward_amounts(self):
        VoteLedger.cast_vote(self.file.id, self.voter.id, 1)
        VoteLedger.cast_vote(self.file.id, self.voter.id, -1)

        self.assertEqual(self._owner_points(), 100 + 5 - 5 - 3)

    def test_losing_concurrent_first_vote_acts_on_winner_row(self):
        """
        Simulate a double-click: the lock read misses, the insert hits the
        unique constraint, and the re-read finds the row the other request made.
        """
        winner = Vote.objects.create(file=self.file, user=self.voter, vote_type=1)
        PointsLedger.apply_delta(self.owner.id, 2)

        with patch.object(VoteLedger, '_locked_vote', side_effect=[None, winner]):
            outcome = VoteLedger.cast_vote(self.file.id, self.voter.id, 1)

        self.assertEqual(outcome.transition, WITHDRAWN)
        self.assertEqual(outcome.deltas, [-2])
        self.assertFalse(Vote.objects.exists())
        self.assertEqual(self._owner_points(), 100)

    def test_losing_concurrent_vote_of_other_type_switches(self):
        winner = Vote.objects.create(file=self.file, user=self.voter, vote_type=1)
        PointsLedger.apply_delta(self.owner.id, 2)

        with patch.object(VoteLedger, '_locked_vote', side_effect=[None, winner]):
            outcome = VoteLedger.cast_vote(self.file.id, self.voter.id, -1)

        self.assertEqual(outcome.transition, SWITCHED)
        self.assertEqual(Vote.objects.get().vote_type, -1)
        self.assertEqual(self._owner_points(), 99)

    # ===================
    # Tally Tests
    # ===================

    def test_tally_counts_by_type(self):
        users = [User.objects.create(wallet_address=f'0x{i}') for i in range(3)]
        VoteLedger.cast_vote(self.file.id, users[0].id, 1)
        VoteLedger.cast_vote(self.file.id, users[1].id, 1)
        VoteLedger.cast_vote(self.file.id, users[2].id, -1)

        tally = VoteLedger.tally(self.file.id)

        self.assertEqual(tally.upvotes, 2)
        self.assertEqual(tally.downvotes, 1)
        self.assertEqual(tally.net_votes, 1)

    def test_tally_empty_file(self):
        tally = VoteLedger.tally(self.file.id)

        self.assertEqual((tally.upvotes, tally.downvotes, tally.net_votes), (0, 0, 0))

    def test_user_vote(self):
        self.assertIsNone(VoteLedger.user_vote(self.file.id, self.voter.id))

        VoteLedger.cast_vote(self.file.id, self.voter.id, -1)

        self.assertEqual(VoteLedger.user_vote(self.file.id, self.voter.id), VoteType.DOWNVOTE)
        self.assertIsNone(VoteLedger.user_vote(self.file.id, None))

    # ===================
    # Failure Tests
    # ===================

    def test_disconnected_wallet_rejected_before_store_access(self):
        with self.assertNumQueries(0):
            with self.assertRaises(WalletRequiredError):
                VoteLedger.cast_vote(self.file.id, None, 1)

    def test_invalid_vote_type_rejected(self):
        for bad in (0, 2, 'up', None):
            with self.assertRaises(InvalidVoteError):
                VoteLedger.cast_vote(self.file.id, self.voter.id, bad)

        self.assertEqual(Vote.objects.count(), 0)

    def test_unknown_file_raises_not_found(self):
        with self.assertRaises(FileRecordNotFoundError):
            VoteLedger.cast_vote(uuid.uuid4(), self.voter.id, 1)

    def test_malformed_file_id_raises_not_found(self):
        with self.assertRaises(FileRecordNotFoundError):
            VoteLedger.cast_vote('not-a-uuid', self.voter.id, 1)

    def test_unknown_user_raises_not_found(self):
        with self.assertRaises(UserNotFoundError):
            VoteLedger.cast_vote(self.file.id, uuid.uuid4(), 1)

        self.assertEqual(self._owner_points(), 100)
