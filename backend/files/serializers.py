from rest_framework import serializers
from contracts.models import Comment, File, Report, Tag, User, VoteType
from .services import VoteLedger


class UserSerializer(serializers.ModelSerializer):
    """Wallet user with reward points balance."""

    class Meta:
        model = User
        fields = ['id', 'wallet_address', 'reward_points', 'created_at']
        read_only_fields = fields


class WalletConnectSerializer(serializers.Serializer):
    wallet_address = serializers.CharField(max_length=255)


class TagSerializer(serializers.ModelSerializer):

    class Meta:
        model = Tag
        fields = ['id', 'tag']
        read_only_fields = fields


class TagDraftField(serializers.Field):
    """
    A tag as sent by the tag input: either a plain label or
    {'id': '<uuid>|temp-...', 'tag': '<label>'}.
    """

    default_error_messages = {
        'invalid': 'Tags must be strings or objects with a "tag" label.',
    }

    def to_internal_value(self, data):
        if isinstance(data, str):
            return data
        if isinstance(data, dict) and isinstance(data.get('tag'), str):
            tag_id = data.get('id')
            return {'id': str(tag_id) if tag_id else None, 'tag': data['tag']}
        self.fail('invalid')

    def to_representation(self, value):
        return value


class TagListSerializer(serializers.Serializer):
    tags = serializers.ListField(child=TagDraftField(), allow_empty=False)


class FileSerializer(serializers.ModelSerializer):
    """
    Serializer for File model.
    Vote counts are derived from vote rows, never stored on the file.
    """
    owner = serializers.CharField(source='owner.wallet_address', read_only=True)
    tags = serializers.SerializerMethodField()
    upvotes = serializers.SerializerMethodField()
    downvotes = serializers.SerializerMethodField()
    net_votes = serializers.SerializerMethodField()
    comment_count = serializers.SerializerMethodField()

    class Meta:
        model = File
        fields = [
            'id',
            'filecoin_hash',
            'file_name',
            'file_type',
            'file_size',
            'thumbnail_url',
            'description',
            'network',
            'upload_date',
            'owner',
            'tags',
            'upvotes',
            'downvotes',
            'net_votes',
            'comment_count',
        ]
        read_only_fields = fields

    def _tally(self, obj):
        # Annotated querysets carry the counts; fall back for fresh instances
        if hasattr(obj, 'upvotes') and hasattr(obj, 'downvotes'):
            return obj.upvotes, obj.downvotes
        cached = getattr(obj, '_vote_tally', None)
        if cached is None:
            cached = VoteLedger.tally(obj.id)
            obj._vote_tally = cached
        return cached.upvotes, cached.downvotes

    def get_tags(self, obj):
        tags = [file_tag.tag for file_tag in obj.file_tags.all()]
        tags.sort(key=lambda tag: tag.tag)
        return TagSerializer(tags, many=True).data

    def get_upvotes(self, obj):
        return self._tally(obj)[0]

    def get_downvotes(self, obj):
        return self._tally(obj)[1]

    def get_net_votes(self, obj):
        upvotes, downvotes = self._tally(obj)
        return upvotes - downvotes

    def get_comment_count(self, obj):
        if hasattr(obj, 'comment_count'):
            return obj.comment_count
        return obj.comments.count()


class FileCreateSerializer(serializers.ModelSerializer):
    """Input for the tagging form: file metadata plus tags."""
    tags = serializers.ListField(child=TagDraftField(), required=False, default=list)

    class Meta:
        model = File
        fields = [
            'filecoin_hash',
            'file_name',
            'file_type',
            'file_size',
            'thumbnail_url',
            'description',
            'network',
            'tags',
        ]
        extra_kwargs = {
            'file_name': {'required': False, 'allow_blank': True},
            'thumbnail_url': {'required': False, 'allow_blank': True},
            'description': {'required': False, 'allow_blank': True},
        }

    def validate_filecoin_hash(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Filecoin hash is required')
        return value

    def validate(self, attrs):
        # Optional text fields are stored as NULL rather than ''
        for name in ('file_name', 'thumbnail_url', 'description'):
            if attrs.get(name) == '':
                attrs[name] = None
        return attrs


class VoteSerializer(serializers.Serializer):
    vote_type = serializers.ChoiceField(choices=VoteType.values)


class VoteTallySerializer(serializers.Serializer):
    upvotes = serializers.IntegerField()
    downvotes = serializers.IntegerField()
    net_votes = serializers.IntegerField()
    user_vote = serializers.IntegerField(allow_null=True)


class VoteOutcomeSerializer(serializers.Serializer):
    state = serializers.CharField()
    transition = serializers.CharField()
    vote_type = serializers.IntegerField(allow_null=True)
    upvotes = serializers.IntegerField(source='tally.upvotes')
    downvotes = serializers.IntegerField(source='tally.downvotes')
    net_votes = serializers.IntegerField(source='tally.net_votes')


class StrictCharField(serializers.CharField):
    """CharField that rejects numbers instead of coercing them to text."""

    def to_internal_value(self, data):
        if not isinstance(data, str):
            self.fail('invalid')
        return super().to_internal_value(data)


class CommentSerializer(serializers.ModelSerializer):
    wallet_address = serializers.CharField(source='user.wallet_address', read_only=True)
    comment = StrictCharField()

    class Meta:
        model = Comment
        fields = ['id', 'file', 'user', 'wallet_address', 'comment', 'created_at']
        read_only_fields = ['id', 'file', 'user', 'wallet_address', 'created_at']


class ReportSerializer(serializers.ModelSerializer):

    class Meta:
        model = Report
        fields = ['id', 'file', 'report_reason', 'created_at']
        read_only_fields = ['id', 'file', 'created_at']
        extra_kwargs = {
            'report_reason': {'required': False, 'allow_blank': True, 'allow_null': True},
        }
