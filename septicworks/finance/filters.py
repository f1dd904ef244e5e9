import django_filters
from django.db.models import Q
from .models import Income, Expense, FixedExpense


class IncomeFilter(django_filters.FilterSet):
    work = django_filters.NumberFilter(field_name='work_id')
    type_income = django_filters.CharFilter(field_name='type_income')
    payment_method = django_filters.CharFilter(field_name='payment_method')
    verified = django_filters.BooleanFilter(field_name='verified')
    date_from = django_filters.DateFilter(field_name='date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='date', lookup_expr='lte')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Income
        fields = ['work', 'type_income', 'payment_method', 'verified', 'date_from', 'date_to', 'search']

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(notes__icontains=value) |
            Q(payment_details__icontains=value) |
            Q(work__property_address__icontains=value)
        )


class ExpenseFilter(django_filters.FilterSet):
    work = django_filters.NumberFilter(field_name='work_id')
    type_expense = django_filters.CharFilter(field_name='type_expense')
    payment_method = django_filters.CharFilter(field_name='payment_method')
    payment_status = django_filters.CharFilter(field_name='payment_status')
    vendor = django_filters.CharFilter(field_name='vendor', lookup_expr='icontains')
    verified = django_filters.BooleanFilter(field_name='verified')
    date_from = django_filters.DateFilter(field_name='date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='date', lookup_expr='lte')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Expense
        fields = ['work', 'type_expense', 'payment_method', 'payment_status', 'vendor', 'verified',
                  'date_from', 'date_to', 'search']

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(notes__icontains=value) |
            Q(vendor__icontains=value) |
            Q(work__property_address__icontains=value)
        )


class FixedExpenseFilter(django_filters.FilterSet):
    category = django_filters.CharFilter(field_name='category')
    frequency = django_filters.CharFilter(field_name='frequency')
    payment_status = django_filters.CharFilter(field_name='payment_status')
    payment_method = django_filters.CharFilter(field_name='payment_method')
    is_active = django_filters.BooleanFilter(field_name='is_active')
    vendor = django_filters.CharFilter(field_name='vendor', lookup_expr='icontains')
    due_before = django_filters.DateFilter(field_name='next_due_date', lookup_expr='lte')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = FixedExpense
        fields = ['category', 'frequency', 'payment_status', 'payment_method', 'is_active', 'vendor',
                  'due_before', 'search']

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(description__icontains=value) |
            Q(vendor__icontains=value)
        )
