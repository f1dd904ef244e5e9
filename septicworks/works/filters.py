import django_filters
from django.db.models import Q
from .models import Permit, Work


class WorkFilter(django_filters.FilterSet):
    """Filter for the works list"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(method='filter_status', label='Status (comma separated)')
    staff = django_filters.NumberFilter(field_name='staff_id')
    is_legacy = django_filters.BooleanFilter(field_name='is_legacy')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = Work
        fields = ['search', 'status', 'staff', 'is_legacy', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(property_address__icontains=value) |
            Q(permit__permit_number__icontains=value) |
            Q(permit__applicant_name__icontains=value) |
            Q(budget__applicant_name__icontains=value)
        )

    def filter_status(self, queryset, name, value):
        statuses = [s.strip() for s in (value or '').split(',') if s.strip()]
        if not statuses:
            return queryset
        return queryset.filter(status__in=statuses)


class PermitFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    system_type = django_filters.CharFilter(field_name='system_type')
    is_pbts = django_filters.BooleanFilter(field_name='is_pbts')
    expiring_before = django_filters.DateFilter(field_name='expiration_date', lookup_expr='lte')

    class Meta:
        model = Permit
        fields = ['search', 'system_type', 'is_pbts', 'expiring_before']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(permit_number__icontains=value) |
            Q(application_number__icontains=value) |
            Q(applicant_name__icontains=value) |
            Q(property_address__icontains=value)
        )
