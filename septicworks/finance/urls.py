from django.urls import path
from .views import (
    income_list_create, income_detail,
    expense_list_create, expense_detail,
    work_balance, payment_methods,
    fixed_expense_list_create, fixed_expense_detail, fixed_expense_toggle,
    fixed_expense_upcoming, fixed_expense_summary,
    fixed_expense_payments, fixed_expense_pay_remaining, fixed_expense_payment_delete,
)

urlpatterns = [
    path('incomes/', income_list_create, name='income-list-create'),
    path('incomes/<int:pk>/', income_detail, name='income-detail'),
    path('expenses/', expense_list_create, name='expense-list-create'),
    path('expenses/<int:pk>/', expense_detail, name='expense-detail'),
    path('works/<int:pk>/balance/', work_balance, name='work-balance'),
    path('payment-methods/', payment_methods, name='payment-methods'),

    path('fixed-expenses/', fixed_expense_list_create, name='fixed-expense-list-create'),
    path('fixed-expenses/upcoming/', fixed_expense_upcoming, name='fixed-expense-upcoming'),
    path('fixed-expenses/summary/', fixed_expense_summary, name='fixed-expense-summary'),
    path('fixed-expenses/<int:pk>/', fixed_expense_detail, name='fixed-expense-detail'),
    path('fixed-expenses/<int:pk>/toggle/', fixed_expense_toggle, name='fixed-expense-toggle'),
    path('fixed-expenses/<int:pk>/payments/', fixed_expense_payments, name='fixed-expense-payments'),
    path('fixed-expenses/<int:pk>/pay-remaining/', fixed_expense_pay_remaining, name='fixed-expense-pay-remaining'),
    path('fixed-expense-payments/<int:pk>/', fixed_expense_payment_delete, name='fixed-expense-payment-delete'),
]
