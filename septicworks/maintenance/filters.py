import django_filters
from django.db.models import Q
from .models import MaintenanceVisit


class MaintenanceVisitFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(method='filter_status')
    staff = django_filters.NumberFilter(field_name='staff_id')
    work = django_filters.NumberFilter(field_name='work_id')
    date_from = django_filters.DateFilter(field_name='scheduled_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='scheduled_date', lookup_expr='lte')
    unassigned = django_filters.BooleanFilter(field_name='staff', lookup_expr='isnull')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = MaintenanceVisit
        fields = ['status', 'staff', 'work', 'date_from', 'date_to', 'unassigned', 'search']

    def filter_status(self, queryset, name, value):
        statuses = [s.strip() for s in value.split(',') if s.strip()]
        return queryset.filter(status__in=statuses) if statuses else queryset

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(work__property_address__icontains=value) |
            Q(work__permit__permit_number__icontains=value) |
            Q(work__permit__applicant_name__icontains=value)
        )
