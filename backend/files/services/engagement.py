"""
Comments and reports on catalogued files.
"""

import logging
from django.core.exceptions import ValidationError
from contracts.models import Comment, File, Report
from files.exceptions import (
    CommentNotFoundError,
    FileRecordNotFoundError,
    InvalidCommentError,
    NotCommentAuthorError,
    WalletRequiredError,
)

logger = logging.getLogger(__name__)


class EngagementService:
    """Comment and report operations. Every write requires a connected wallet."""

    @staticmethod
    def _get_file(file_id) -> File:
        try:
            file_record = File.objects.filter(pk=file_id).first()
        except (ValueError, ValidationError):
            file_record = None
        if file_record is None:
            raise FileRecordNotFoundError(f"File {file_id} not found")
        return file_record

    @classmethod
    def add_comment(cls, file_id, user_id, text: str) -> Comment:
        if user_id is None:
            raise WalletRequiredError()
        text = (text or '').strip()
        if not text:
            raise InvalidCommentError()

        file_record = cls._get_file(file_id)
        comment = Comment.objects.create(file=file_record, user_id=user_id, comment=text)
        logger.info(f"User {user_id} commented on file {file_id}")
        return comment

    @classmethod
    def list_comments(cls, file_id):
        file_record = cls._get_file(file_id)
        return Comment.objects.filter(file=file_record).select_related('user').order_by('created_at')

    @staticmethod
    def delete_comment(comment_id, user_id) -> None:
        """
        Delete a comment.

        Raises:
            CommentNotFoundError: If the comment does not exist
            NotCommentAuthorError: If the caller is not the author
        """
        if user_id is None:
            raise WalletRequiredError()
        try:
            comment = Comment.objects.filter(pk=comment_id).first()
        except (ValueError, ValidationError):
            comment = None
        if comment is None:
            raise CommentNotFoundError(f"Comment {comment_id} not found")
        if str(comment.user_id) != str(user_id):
            raise NotCommentAuthorError()

        comment.delete()
        logger.info(f"User {user_id} deleted comment {comment_id}")

    @classmethod
    def report_file(cls, file_id, user_id, reason: str = None) -> Report:
        if user_id is None:
            raise WalletRequiredError()
        file_record = cls._get_file(file_id)
        reason = (reason or '').strip() or None
        report = Report.objects.create(file=file_record, user_id=user_id, report_reason=reason)
        logger.warning(f"File {file_id} reported by user {user_id}: {reason or 'no reason given'}")
        return report
