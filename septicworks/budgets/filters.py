import django_filters
from django.db.models import Q
from .models import Budget, BudgetItem


class BudgetFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(method='filter_status', label='Status (comma separated)')
    permit = django_filters.NumberFilter(field_name='permit_id')
    is_legacy = django_filters.BooleanFilter(field_name='is_legacy')
    date_from = django_filters.DateFilter(field_name='date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='date', lookup_expr='lte')

    class Meta:
        model = Budget
        fields = ['search', 'status', 'permit', 'is_legacy', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        query = (
            Q(applicant_name__icontains=value) |
            Q(applicant_email__icontains=value) |
            Q(property_address__icontains=value) |
            Q(permit__permit_number__icontains=value)
        )
        if value.isdigit():
            query |= Q(invoice_number=int(value))
        return queryset.filter(query)

    def filter_status(self, queryset, name, value):
        statuses = [s.strip() for s in (value or '').split(',') if s.strip()]
        if not statuses:
            return queryset
        return queryset.filter(status__in=statuses)


class BudgetItemFilter(django_filters.FilterSet):
    active = django_filters.BooleanFilter(field_name='is_active')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = BudgetItem
        fields = ['active', 'category', 'search']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(description__icontains=value) |
            Q(brand__icontains=value) |
            Q(supplier_name__icontains=value)
        )
