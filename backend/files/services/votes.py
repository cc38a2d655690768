"""
Vote Ledger
===========
One vote per (file, user), with the file owner's reward points kept in step
with the current vote state.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from contracts.models import File, User, Vote, VoteType
from files.exceptions import (
    FileRecordNotFoundError,
    InvalidVoteError,
    UserNotFoundError,
    WalletRequiredError,
)
from .points import PointsLedger, get_reward_points

logger = logging.getLogger(__name__)


NO_VOTE = 'no_vote'
UPVOTED = 'upvoted'
DOWNVOTED = 'downvoted'

CREATED = 'created'
WITHDRAWN = 'withdrawn'
SWITCHED = 'switched'


@dataclass
class VoteTally:
    upvotes: int = 0
    downvotes: int = 0

    @property
    def net_votes(self) -> int:
        return self.upvotes - self.downvotes


@dataclass
class VoteOutcome:
    state: str
    transition: str
    vote_type: Optional[int]
    deltas: List[int] = field(default_factory=list)
    tally: VoteTally = field(default_factory=VoteTally)


class VoteLedger:
    """
    Per (file, user) state machine over {no_vote, upvoted, downvoted}.

    Transitions:
    - no vote, cast v        -> create vote; owner += delta(v)
    - voted v, cast v again  -> delete vote; owner -= delta(v)
    - voted v, cast v' != v  -> update vote; owner -= delta(v); owner += delta(v')

    The vote row mutation and the ledger updates share one transaction.
    """

    @staticmethod
    def validate_vote_type(vote_type) -> int:
        try:
            value = int(vote_type)
        except (TypeError, ValueError):
            raise InvalidVoteError()
        if value not in VoteType.values:
            raise InvalidVoteError()
        return value

    @staticmethod
    def delta_for(vote_type: int) -> int:
        """Points the file owner receives for a vote of this type."""
        if vote_type == VoteType.UPVOTE:
            return get_reward_points('UPVOTE_RECEIVED')
        return get_reward_points('DOWNVOTE_RECEIVED')

    @staticmethod
    def state_for(vote_type: Optional[int]) -> str:
        if vote_type is None:
            return NO_VOTE
        return UPVOTED if vote_type == VoteType.UPVOTE else DOWNVOTED

    @classmethod
    def cast_vote(cls, file_id, user_id, vote_type) -> VoteOutcome:
        """
        Cast, withdraw or switch a vote.

        Args:
            file_id: File being voted on
            user_id: Voting user (resolved from the wallet session)
            vote_type: 1 or -1

        Returns:
            VoteOutcome: Resulting state, transition, applied deltas and tally

        Raises:
            WalletRequiredError: If no user is connected
            InvalidVoteError: If vote_type is not 1 or -1
            FileRecordNotFoundError / UserNotFoundError: Unknown file or user
        """
        if user_id is None:
            raise WalletRequiredError()
        vote_type = cls.validate_vote_type(vote_type)

        with transaction.atomic():
            try:
                file_record = File.objects.filter(pk=file_id).only('id', 'owner_id').first()
            except (ValueError, ValidationError):
                file_record = None
            if file_record is None:
                raise FileRecordNotFoundError(f"File {file_id} not found")
            if not User.objects.filter(pk=user_id).exists():
                raise UserNotFoundError(f"User {user_id} not found")

            owner_id = file_record.owner_id
            existing = cls._locked_vote(file_id, user_id)
            deltas = []

            if existing is None:
                try:
                    with transaction.atomic():
                        Vote.objects.create(file_id=file_id, user_id=user_id, vote_type=vote_type)
                except IntegrityError:
                    # A concurrent first vote won the insert; act on its row instead
                    existing = cls._locked_vote(file_id, user_id)
                    if existing is None:
                        raise
                    logger.info(f"Concurrent vote on file {file_id} by user {user_id}, reusing winner")

            if existing is None:
                deltas.append(cls.delta_for(vote_type))
                transition, current = CREATED, vote_type
            elif existing.vote_type == vote_type:
                existing.delete()
                deltas.append(-cls.delta_for(vote_type))
                transition, current = WITHDRAWN, None
            else:
                previous = existing.vote_type
                existing.vote_type = vote_type
                existing.save(update_fields=['vote_type'])
                # Revert the previous vote, then apply the new one: two ledger ops
                deltas.append(-cls.delta_for(previous))
                deltas.append(cls.delta_for(vote_type))
                transition, current = SWITCHED, vote_type

            for delta in deltas:
                PointsLedger.apply_delta(owner_id, delta)

        logger.info(
            f"Vote {transition} on file {file_id} by user {user_id} "
            f"(owner deltas {deltas})"
        )
        return VoteOutcome(
            state=cls.state_for(current),
            transition=transition,
            vote_type=current,
            deltas=deltas,
            tally=cls.tally(file_id),
        )

    @staticmethod
    def _locked_vote(file_id, user_id):
        return (
            Vote.objects.select_for_update()
            .filter(file_id=file_id, user_id=user_id)
            .first()
        )

    @staticmethod
    def tally(file_id) -> VoteTally:
        """Up/down vote counts, derived from vote rows."""
        counts = Vote.objects.filter(file_id=file_id).aggregate(
            upvotes=Count('id', filter=Q(vote_type=VoteType.UPVOTE)),
            downvotes=Count('id', filter=Q(vote_type=VoteType.DOWNVOTE)),
        )
        return VoteTally(
            upvotes=counts['upvotes'] or 0,
            downvotes=counts['downvotes'] or 0,
        )

    @staticmethod
    def user_vote(file_id, user_id) -> Optional[int]:
        if user_id is None:
            return None
        return (
            Vote.objects.filter(file_id=file_id, user_id=user_id)
            .values_list('vote_type', flat=True)
            .first()
        )
