from .identity import IdentityService
from .randomness import BonusRandomnessService
from .points import PointsLedger
from .tags import TagReconciler, PendingTag, PersistedTag
from .votes import VoteLedger
from .catalog import CatalogService
from .engagement import EngagementService

__all__ = [
    'IdentityService',
    'BonusRandomnessService',
    'PointsLedger',
    'TagReconciler',
    'PendingTag',
    'PersistedTag',
    'VoteLedger',
    'CatalogService',
    'EngagementService',
]
