"""
Identity Service
================
Maps a wallet address to a User record, creating one on first sight.
"""

import logging
from typing import Optional
from django.db import IntegrityError, transaction
from contracts.models import User
from files.exceptions import WalletRequiredError

logger = logging.getLogger(__name__)


class IdentityService:
    """
    Resolve wallet addresses to users.

    Resolution Algorithm:
    1. Reject blank addresses before touching the database
    2. Look up the user by exact wallet address
    3. If absent, create it with zero reward points inside a savepoint
    4. If the create loses a race (unique violation), re-query the winner's row
    """

    @staticmethod
    def normalize_address(wallet_address) -> str:
        return (wallet_address or '').strip()

    @staticmethod
    def _lookup(wallet_address: str) -> Optional[User]:
        return User.objects.filter(wallet_address=wallet_address).first()

    @classmethod
    def resolve(cls, wallet_address: str) -> tuple[User, bool]:
        """
        Get or create the user for a wallet address.

        Args:
            wallet_address: Address reported by the wallet provider

        Returns:
            tuple: (User instance, created boolean)

        Raises:
            WalletRequiredError: If the address is blank
        """
        address = cls.normalize_address(wallet_address)
        if not address:
            raise WalletRequiredError()

        user = cls._lookup(address)
        if user is not None:
            return user, False

        try:
            with transaction.atomic():
                user = User.objects.create(wallet_address=address, reward_points=0)
        except IntegrityError:
            # Another request created the same address between lookup and insert
            logger.info(f"Concurrent user creation for {address}, re-querying")
            user = cls._lookup(address)
            if user is None:
                raise
            return user, False

        logger.info(f"Created user {user.id} for wallet {address}")
        return user, True
