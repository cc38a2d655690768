"""
Domain errors raised by the catalogue services.

Views catch these at the action boundary and turn them into a single
``{'error': message}`` response.
"""


class CatalogError(Exception):
    """Base class for catalogue errors carrying a human-readable message."""

    default_message = 'Catalogue operation failed'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(CatalogError):
    default_message = 'Not found'


class FileRecordNotFoundError(NotFoundError):
    default_message = 'File not found'


class UserNotFoundError(NotFoundError):
    default_message = 'User not found'


class TagNotFoundError(NotFoundError):
    default_message = 'Tag not found'


class CommentNotFoundError(NotFoundError):
    default_message = 'Comment not found'


class WalletRequiredError(CatalogError):
    default_message = 'Wallet connection required'


class InvalidVoteError(CatalogError):
    default_message = 'vote_type must be 1 or -1'


class InvalidCommentError(CatalogError):
    default_message = 'Comment cannot be empty'


class NotCommentAuthorError(CatalogError):
    default_message = 'Only the author can delete this comment'


class PendingTagError(CatalogError):
    default_message = 'Temporary tag ids cannot be persisted'
