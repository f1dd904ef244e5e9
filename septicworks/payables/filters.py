import django_filters
from django.db.models import Q
from .models import SupplierInvoice


class SupplierInvoiceFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(method='filter_status', label='Payment status (comma separated)')
    vendor = django_filters.CharFilter(field_name='vendor', lookup_expr='icontains')
    work = django_filters.NumberFilter(field_name='items__work_id', distinct=True)
    date_from = django_filters.DateFilter(field_name='issue_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='issue_date', lookup_expr='lte')
    due_before = django_filters.DateFilter(field_name='due_date', lookup_expr='lte')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = SupplierInvoice
        fields = ['status', 'vendor', 'work', 'date_from', 'date_to', 'due_before', 'search']

    def filter_status(self, queryset, name, value):
        statuses = [s.strip() for s in (value or '').split(',') if s.strip()]
        if not statuses:
            return queryset
        return queryset.filter(payment_status__in=statuses)

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(invoice_number__icontains=value) |
            Q(vendor__icontains=value) |
            Q(notes__icontains=value) |
            Q(items__description__icontains=value)
        ).distinct()
