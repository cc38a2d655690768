import logging
from django.db.models import Count, F, Q
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.pagination import LimitOffsetPagination
from rest_framework.response import Response
from contracts.models import File, Tag, VoteType
from .authentication import IsWalletConnected, get_session
from .exceptions import (
    CatalogError,
    NotCommentAuthorError,
    NotFoundError,
    WalletRequiredError,
)
from .filters import FileFilter
from .serializers import (
    CommentSerializer,
    FileCreateSerializer,
    FileSerializer,
    ReportSerializer,
    TagListSerializer,
    TagSerializer,
    UserSerializer,
    VoteOutcomeSerializer,
    VoteSerializer,
    VoteTallySerializer,
    WalletConnectSerializer,
)
from .services import (
    CatalogService,
    EngagementService,
    IdentityService,
    TagReconciler,
    VoteLedger,
)

logger = logging.getLogger(__name__)


def catalog_error_response(error: CatalogError) -> Response:
    """Convert a domain error into a single {'error': message} response."""
    if isinstance(error, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, WalletRequiredError):
        code = status.HTTP_401_UNAUTHORIZED
    elif isinstance(error, NotCommentAuthorError):
        code = status.HTTP_403_FORBIDDEN
    else:
        code = status.HTTP_400_BAD_REQUEST
    return Response({'error': error.message}, status=code)


def failure_response(operation: str, error: Exception) -> Response:
    logger.error(f"{operation} failed: {str(error)}", exc_info=True)
    return Response(
        {'error': f'{operation} failed: {str(error)}'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


class FilePagination(LimitOffsetPagination):
    """
    Pagination for file listings.

    - Default limit: 10
    - Maximum limit: 100
    """
    default_limit = 10
    max_limit = 100


class FileViewSet(mixins.ListModelMixin,
                  mixins.RetrieveModelMixin,
                  mixins.CreateModelMixin,
                  viewsets.GenericViewSet):
    """
    ViewSet for catalogue files.

    Provides:
    - List files with pagination, filtering and vote-based sorting
    - Tag a new file (create + tags + reward)
    - Vote, tag editing, comments and reports on a file

    Filtering (all use AND logic):
    - search: Case-insensitive match on file name or description
    - file_type / network: Exact match
    - tags: Any of the given tag ids
    - tag: Tag label (case-insensitive)

    Sorting:
    - Default: -upload_date (newest first)
    - Allowed: upload_date, file_name, file_size, upvotes, net_votes
    - Prefix with '-' for descending
    """
    queryset = File.objects.all()
    serializer_class = FileSerializer
    filterset_class = FileFilter
    pagination_class = FilePagination
    ordering_fields = ['upload_date', 'file_name', 'file_size', 'upvotes', 'net_votes']
    ordering = ['-upload_date']

    wallet_actions = {'create', 'vote', 'tags', 'remove_tag', 'comments', 'report'}

    def get_queryset(self):
        """Annotate derived vote/comment counts and avoid N+1 on owner and tags."""
        return (
            File.objects.select_related('owner')
            .prefetch_related('file_tags__tag')
            .annotate(
                upvotes=Count('votes', filter=Q(votes__vote_type=VoteType.UPVOTE), distinct=True),
                downvotes=Count('votes', filter=Q(votes__vote_type=VoteType.DOWNVOTE), distinct=True),
                comment_count=Count('comments', distinct=True),
            )
            .annotate(net_votes=F('upvotes') - F('downvotes'))
        )

    def get_permissions(self):
        if self.action in self.wallet_actions and self.request.method != 'GET':
            return [IsWalletConnected()]
        return super().get_permissions()

    def _annotated(self, file_id):
        return self.get_queryset().get(pk=file_id)

    def create(self, request, *args, **kwargs):
        """
        Catalogue a Filecoin file with tags.

        Tags may be plain labels or {'id', 'tag'} drafts; 'temp-' ids are
        resolved to durable tags before linking. The tagger is rewarded with
        TAG_FILE points plus a beacon bonus.
        """
        serializer = FileCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'error': 'Invalid file data', 'details': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        file_data = dict(serializer.validated_data)
        tags = file_data.pop('tags', [])

        try:
            file_record, reward = CatalogService.tag_file(get_session(request), file_data, tags)
        except CatalogError as e:
            return catalog_error_response(e)
        except Exception as e:
            return failure_response('Tagging', e)

        data = dict(self.get_serializer(self._annotated(file_record.id)).data)
        data['reward_points_awarded'] = reward
        return Response(data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def vote(self, request, pk=None):
        """
        Cast, withdraw (same vote again) or switch a vote.

        Body: {"vote_type": 1 | -1}
        """
        serializer = VoteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'error': 'vote_type must be 1 or -1', 'details': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            outcome = VoteLedger.cast_vote(
                pk,
                get_session(request).user_id,
                serializer.validated_data['vote_type']
            )
        except CatalogError as e:
            return catalog_error_response(e)
        except Exception as e:
            return failure_response('Vote', e)

        return Response(VoteOutcomeSerializer(outcome).data)

    @action(detail=True, methods=['get'])
    def votes(self, request, pk=None):
        """Vote tally, plus the caller's own vote when a wallet is connected."""
        try:
            file_record = CatalogService.get_file(pk)
        except CatalogError as e:
            return catalog_error_response(e)

        session = get_session(request)
        tally = VoteLedger.tally(file_record.id)
        return Response(VoteTallySerializer({
            'upvotes': tally.upvotes,
            'downvotes': tally.downvotes,
            'net_votes': tally.net_votes,
            'user_vote': VoteLedger.user_vote(file_record.id, session.user_id if session else None),
        }).data)

    @action(detail=True, methods=['post'])
    def tags(self, request, pk=None):
        """Attach additional tags to an existing file."""
        serializer = TagListSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'error': 'Invalid tags', 'details': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            CatalogService.add_tags(get_session(request), pk, serializer.validated_data['tags'])
        except CatalogError as e:
            return catalog_error_response(e)
        except Exception as e:
            return failure_response('Tagging', e)

        return Response(self.get_serializer(self._annotated(pk)).data)

    @action(detail=True, methods=['delete'], url_path=r'tags/(?P<tag_id>[^/.]+)')
    def remove_tag(self, request, pk=None, tag_id=None):
        """Unlink a tag from a file."""
        try:
            file_record = CatalogService.get_file(pk)
            TagReconciler.remove(file_record, tag_id)
        except CatalogError as e:
            return catalog_error_response(e)
        except Exception as e:
            return failure_response('Tag removal', e)

        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['get', 'post'])
    def comments(self, request, pk=None):
        """List comments (oldest first) or add one."""
        if request.method == 'POST':
            serializer = CommentSerializer(data=request.data)
            if not serializer.is_valid():
                return Response(
                    {'error': 'Invalid comment', 'details': serializer.errors},
                    status=status.HTTP_400_BAD_REQUEST
                )

        try:
            if request.method == 'GET':
                comments = EngagementService.list_comments(pk)
                return Response(CommentSerializer(comments, many=True).data)

            comment = EngagementService.add_comment(
                pk,
                get_session(request).user_id,
                serializer.validated_data['comment']
            )
        except CatalogError as e:
            return catalog_error_response(e)
        except Exception as e:
            return failure_response('Comment', e)

        return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def report(self, request, pk=None):
        """Report a file. Reports are append-only."""
        serializer = ReportSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'error': 'Invalid report', 'details': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            report = EngagementService.report_file(
                pk,
                get_session(request).user_id,
                serializer.validated_data.get('report_reason')
            )
        except CatalogError as e:
            return catalog_error_response(e)
        except Exception as e:
            return failure_response('Report', e)

        return Response(ReportSerializer(report).data, status=status.HTTP_201_CREATED)


class TagViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Tag suggestions for the tag input.

    Query Parameters:
        search: Case-insensitive substring (returns at most 10 tags)
    """
    queryset = Tag.objects.all()
    serializer_class = TagSerializer
    pagination_class = None
    filter_backends = []

    def get_queryset(self):
        if self.action == 'list':
            return TagReconciler.search(self.request.query_params.get('search', ''))
        return Tag.objects.all()


@api_view(['POST'])
def connect_wallet(request):
    """
    Resolve a wallet address to a user, creating it on first connect.

    Returns 201 with the new user, or 200 if it already existed.
    """
    serializer = WalletConnectSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {'error': 'wallet_address is required', 'details': serializer.errors},
            status=status.HTTP_400_BAD_REQUEST
        )

    try:
        user, created = IdentityService.resolve(serializer.validated_data['wallet_address'])
    except CatalogError as e:
        return catalog_error_response(e)
    except Exception as e:
        return failure_response('Wallet connect', e)

    return Response(
        UserSerializer(user).data,
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
    )


@api_view(['GET'])
@permission_classes([IsWalletConnected])
def current_user(request):
    """The connected user, including the current reward points balance."""
    user = get_session(request).user
    user.refresh_from_db(fields=['reward_points'])
    return Response(UserSerializer(user).data)


@api_view(['DELETE'])
@permission_classes([IsWalletConnected])
def delete_comment(request, comment_id):
    """Delete a comment. Only its author may do so."""
    try:
        EngagementService.delete_comment(comment_id, get_session(request).user_id)
    except CatalogError as e:
        return catalog_error_response(e)
    except Exception as e:
        return failure_response('Comment deletion', e)

    return Response(status=status.HTTP_204_NO_CONTENT)
