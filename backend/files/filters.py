"""
File filtering for the catalogue listing.

Filter Types:
- search: Case-insensitive substring match on file_name OR description
- file_type: Exact MIME type match
- network: Exact Filecoin network match
- tags: Files carrying any of the given tag ids
- tag: Files carrying a tag whose label matches case-insensitively

All filters use AND logic when combined.
"""

from django.db.models import Q
from django_filters import rest_framework as filters
from contracts.models import File, Tag


class FileFilter(filters.FilterSet):
    """
    FilterSet for File model.

    Query Parameters:
        search: Substring match on file name or description (case-insensitive)
        file_type: Exact MIME type (e.g., 'application/pdf')
        network: Exact network name (e.g., 'mainnet')
        tags: Tag id, repeatable (?tags=<id>&tags=<id>), any-of semantics
        tag: Tag label, case-insensitive exact match
    """

    search = filters.CharFilter(
        method='filter_search',
        max_length=255,
        help_text='Case-insensitive substring match on file name or description'
    )

    file_type = filters.CharFilter(
        field_name='file_type',
        lookup_expr='exact',
        help_text='Exact MIME type match (e.g., application/pdf)'
    )

    network = filters.CharFilter(
        field_name='network',
        lookup_expr='exact',
        help_text='Exact Filecoin network match'
    )

    tags = filters.ModelMultipleChoiceFilter(
        field_name='file_tags__tag',
        queryset=Tag.objects.all(),
        distinct=True,
        help_text='Files tagged with any of these tag ids'
    )

    tag = filters.CharFilter(
        field_name='file_tags__tag__tag',
        lookup_expr='iexact',
        distinct=True,
        help_text='Files tagged with this label (case-insensitive)'
    )

    class Meta:
        model = File
        fields = [
            'search',
            'file_type',
            'network',
            'tags',
            'tag',
        ]

    def filter_search(self, queryset, name, value):
        """Match the query against file name or description."""
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(file_name__icontains=value) | Q(description__icontains=value)
        )
