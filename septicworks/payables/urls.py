from django.urls import path
from .views import (
    supplier_invoice_list_create, supplier_invoice_detail, supplier_invoice_pay, supplier_invoice_upload,
    accounts_payable, payment_history, vendor_list,
)

urlpatterns = [
    path('supplier-invoices/', supplier_invoice_list_create, name='supplier-invoice-list-create'),
    path('supplier-invoices/accounts-payable/', accounts_payable, name='supplier-invoice-accounts-payable'),
    path('supplier-invoices/payment-history/', payment_history, name='supplier-invoice-payment-history'),
    path('supplier-invoices/vendors/', vendor_list, name='supplier-invoice-vendors'),
    path('supplier-invoices/<int:pk>/', supplier_invoice_detail, name='supplier-invoice-detail'),
    path('supplier-invoices/<int:pk>/pay/', supplier_invoice_pay, name='supplier-invoice-pay'),
    path('supplier-invoices/<int:pk>/upload-invoice/', supplier_invoice_upload, name='supplier-invoice-upload'),
]
