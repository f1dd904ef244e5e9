import django_filters
from django.db.models import Q
from .models import BankTransaction


class BankTransactionFilter(django_filters.FilterSet):
    account = django_filters.NumberFilter(field_name='bank_account_id')
    transaction_type = django_filters.CharFilter(field_name='transaction_type')
    category = django_filters.CharFilter(field_name='category')
    date_from = django_filters.DateFilter(field_name='date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='date', lookup_expr='lte')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = BankTransaction
        fields = ['account', 'transaction_type', 'category', 'date_from', 'date_to', 'search']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(description__icontains=value) |
            Q(notes__icontains=value) |
            Q(reference_number__icontains=value)
        )
