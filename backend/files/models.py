# The tables are owned by the contracts app; this module only re-exports them
# so `files.models` stays importable for app-local code.

from contracts.models import Comment, File, FileTag, Report, Tag, User, Vote, VoteType

__all__ = ['Comment', 'File', 'FileTag', 'Report', 'Tag', 'User', 'Vote', 'VoteType']
