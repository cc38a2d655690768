"""
Wallet session authentication.

The wallet provider lives in the browser; the front-end forwards the first
connected account in the X-Wallet-Address header. Each request gets its own
WalletSession instead of a process-wide wallet/user context.
"""

import logging
from dataclasses import dataclass
from rest_framework import exceptions, status
from rest_framework.authentication import BaseAuthentication
from rest_framework.permissions import BasePermission
from contracts.models import User
from files.exceptions import WalletRequiredError
from files.services.identity import IdentityService

logger = logging.getLogger(__name__)


WALLET_HEADER = 'HTTP_X_WALLET_ADDRESS'


@dataclass
class WalletSession:
    """Authenticated wallet for the lifetime of one request."""
    wallet_address: str
    user: User

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_anonymous(self) -> bool:
        return False

    @property
    def user_id(self):
        return self.user.id


class WalletRequired(exceptions.APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = WalletRequiredError.default_message
    default_code = 'wallet_required'


class WalletAuthentication(BaseAuthentication):
    """
    Resolve the X-Wallet-Address header into a WalletSession.

    No header means an anonymous request; the user row is created on first sight.
    """

    def authenticate(self, request):
        if WALLET_HEADER not in request.META:
            return None

        try:
            user, created = IdentityService.resolve(request.META[WALLET_HEADER])
        except WalletRequiredError:
            raise exceptions.AuthenticationFailed('Wallet address header is empty')

        if created:
            logger.info(f"New wallet connected: {user.wallet_address}")
        return WalletSession(wallet_address=user.wallet_address, user=user), None

    def authenticate_header(self, request):
        return 'Wallet'


def get_session(request):
    """WalletSession for the request, or None when no wallet is connected."""
    user = getattr(request, 'user', None)
    return user if isinstance(user, WalletSession) else None


class IsWalletConnected(BasePermission):
    """Reject the request before any service call when no wallet is connected."""

    def has_permission(self, request, view):
        if get_session(request) is None:
            raise WalletRequired()
        return True
