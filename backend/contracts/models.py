"""
Shared Data Contract Models
===========================
DO NOT MODIFY without explicit approval.
Table names match the collections the front-end was built against.

Models:
    - User: Wallet-identified contributor with a reward points balance
    - File: Catalogued Filecoin file metadata (owned by the tagging user)
    - Tag: Free-form label, compared by its normalized (lowercase) form
    - FileTag: File <-> Tag junction
    - Vote: One up/down vote per (file, user)
    - Comment: User comment on a file
    - Report: Append-only abuse report on a file
"""

from django.db import models
import uuid


class User(models.Model):
    """
    Wallet-identified user.
    Created lazily the first time a wallet address is seen.
    reward_points is only ever changed through the points ledger.
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    wallet_address = models.CharField(
        max_length=255,
        unique=True,
        help_text="Wallet address used as the login credential"
    )
    reward_points = models.IntegerField(
        default=0,
        help_text="Current reward points balance"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When this wallet was first seen"
    )

    class Meta:
        db_table = 'users'
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        return f"{self.wallet_address} ({self.reward_points} pts)"


class File(models.Model):
    """
    Represents a file stored on the Filecoin network.
    Immutable after creation; vote and comment counts are derived on read.
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    filecoin_hash = models.CharField(
        max_length=255,
        help_text="Content identifier on the Filecoin network"
    )
    file_name = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Human-readable file name"
    )
    file_type = models.CharField(
        max_length=100,
        help_text="MIME type of the file"
    )
    file_size = models.PositiveBigIntegerField(
        help_text="File size in bytes"
    )
    thumbnail_url = models.URLField(
        max_length=500,
        null=True,
        blank=True,
        help_text="Optional preview image URL"
    )
    description = models.TextField(
        null=True,
        blank=True,
        help_text="Free-form description"
    )
    network = models.CharField(
        max_length=50,
        help_text="Filecoin network the file lives on (e.g. mainnet)"
    )
    upload_date = models.DateTimeField(
        auto_now_add=True,
        help_text="When this file was catalogued"
    )
    owner = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='files',
        help_text="User who tagged this file and receives vote rewards"
    )

    class Meta:
        db_table = 'files'
        ordering = ['-upload_date']
        verbose_name = "File"
        verbose_name_plural = "Files"
        indexes = [
            models.Index(fields=['file_name'], name='file_name_idx'),
            models.Index(fields=['file_type'], name='file_type_idx'),
            models.Index(fields=['upload_date'], name='file_upload_date_idx'),
            models.Index(fields=['filecoin_hash'], name='file_filecoin_hash_idx'),
        ]

    def __str__(self):
        return self.file_name or self.filecoin_hash


class Tag(models.Model):
    """
    Free-form tag label.
    No uniqueness is enforced on the label; lookups are case-insensitive.
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    tag = models.CharField(
        max_length=100,
        help_text="Tag label (new tags are stored normalized)"
    )

    class Meta:
        db_table = 'tags'
        verbose_name = "Tag"
        verbose_name_plural = "Tags"
        indexes = [
            models.Index(fields=['tag'], name='tag_label_idx'),
        ]

    def __str__(self):
        return self.tag


class FileTag(models.Model):
    """Junction between File and Tag. No payload."""
    file = models.ForeignKey(
        File,
        on_delete=models.CASCADE,
        related_name='file_tags'
    )
    tag = models.ForeignKey(
        Tag,
        on_delete=models.CASCADE,
        related_name='file_tags'
    )

    class Meta:
        db_table = 'file_tags'
        verbose_name = "File Tag"
        verbose_name_plural = "File Tags"
        constraints = [
            models.UniqueConstraint(fields=['file', 'tag'], name='unique_file_tag'),
        ]

    def __str__(self):
        return f"{self.file_id} -> {self.tag_id}"


class VoteType(models.IntegerChoices):
    UPVOTE = 1, 'Upvote'
    DOWNVOTE = -1, 'Downvote'


class Vote(models.Model):
    """
    A user's vote on a file.
    At most one row per (file, user); switching direction updates in place.
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    file = models.ForeignKey(
        File,
        on_delete=models.CASCADE,
        related_name='votes'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='votes'
    )
    vote_type = models.SmallIntegerField(
        choices=VoteType.choices,
        help_text="+1 for upvote, -1 for downvote"
    )
    created_at = models.DateTimeField(
        auto_now_add=True
    )

    class Meta:
        db_table = 'votes'
        verbose_name = "Vote"
        verbose_name_plural = "Votes"
        constraints = [
            models.UniqueConstraint(fields=['file', 'user'], name='unique_vote_per_user_file'),
        ]
        indexes = [
            models.Index(fields=['file', 'vote_type'], name='vote_file_type_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} {self.vote_type:+d} on {self.file_id}"


class Comment(models.Model):
    """User comment on a file. Only the author may delete it."""
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    file = models.ForeignKey(
        File,
        on_delete=models.CASCADE,
        related_name='comments'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='comments'
    )
    comment = models.TextField()
    created_at = models.DateTimeField(
        auto_now_add=True
    )

    class Meta:
        db_table = 'comments'
        ordering = ['created_at']
        verbose_name = "Comment"
        verbose_name_plural = "Comments"

    def __str__(self):
        return self.comment[:50]


class Report(models.Model):
    """Append-only report flagging a file."""
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    file = models.ForeignKey(
        File,
        on_delete=models.CASCADE,
        related_name='reports'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='reports'
    )
    report_reason = models.TextField(
        null=True,
        blank=True
    )
    created_at = models.DateTimeField(
        auto_now_add=True
    )

    class Meta:
        db_table = 'reports'
        ordering = ['-created_at']
        verbose_name = "Report"
        verbose_name_plural = "Reports"

    def __str__(self):
        return f"Report on {self.file_id} by {self.user_id}"
