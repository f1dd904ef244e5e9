from django.urls import path
from .views import (
    bank_account_list_create, bank_account_detail, bank_account_balance, bank_account_summary,
    bank_account_statement,
    bank_transaction_list, bank_transaction_detail,
    bank_deposit, bank_withdrawal, bank_transfer, credit_card_payment,
)

urlpatterns = [
    # Bank account endpoints
    path('bank-accounts/', bank_account_list_create, name='bank-account-list-create'),
    path('bank-accounts/summary/', bank_account_summary, name='bank-account-summary'),
    path('bank-accounts/<int:pk>/', bank_account_detail, name='bank-account-detail'),
    path('bank-accounts/<int:pk>/balance/', bank_account_balance, name='bank-account-balance'),
    path('bank-accounts/<int:pk>/statement/', bank_account_statement, name='bank-account-statement'),

    # Bank transaction endpoints
    path('bank-transactions/', bank_transaction_list, name='bank-transaction-list'),
    path('bank-transactions/deposit/', bank_deposit, name='bank-deposit'),
    path('bank-transactions/withdrawal/', bank_withdrawal, name='bank-withdrawal'),
    path('bank-transactions/transfer/', bank_transfer, name='bank-transfer'),
    path('bank-transactions/credit-card-payment/', credit_card_payment, name='bank-credit-card-payment'),
    path('bank-transactions/<int:pk>/', bank_transaction_detail, name='bank-transaction-detail'),
]
