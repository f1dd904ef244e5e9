from django.urls import path
from . import views

urlpatterns = [
    path('financial-dashboard/', views.financial_dashboard, name='report-financial-dashboard'),
    path('accounts-receivable/', views.accounts_receivable, name='report-accounts-receivable'),
    path('monthly-installations/', views.monthly_installations, name='report-monthly-installations'),
    path('monthly-expenses/', views.monthly_expenses, name='report-monthly-expenses'),
    path('monthly-expenses/years/', views.monthly_expenses_years, name='report-monthly-expenses-years'),
    path('balance-detail/', views.balance_detail, name='report-balance-detail'),
]
