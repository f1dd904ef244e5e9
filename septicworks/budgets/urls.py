from django.urls import path
from .views import (
    budget_list_create, budget_detail, budget_send, budget_approve, budget_reject,
    budget_payment_proof, budget_pdf,
    work_final_invoice, final_invoice_detail, final_invoice_extra_items, final_invoice_extra_item_detail,
    final_invoice_pdf, final_invoice_preview, final_invoice_email,
    budget_item_list_create, budget_item_detail, budget_item_toggle, budget_item_categories,
    budget_note_list_create, budget_note_detail, budget_note_stats, budget_note_alerts,
)

urlpatterns = [
    # Budget endpoints
    path('budgets/', budget_list_create, name='budget-list-create'),
    path('budgets/<int:pk>/', budget_detail, name='budget-detail'),
    path('budgets/<int:pk>/send/', budget_send, name='budget-send'),
    path('budgets/<int:pk>/approve/', budget_approve, name='budget-approve'),
    path('budgets/<int:pk>/reject/', budget_reject, name='budget-reject'),
    path('budgets/<int:pk>/payment-proof/', budget_payment_proof, name='budget-payment-proof'),
    path('budgets/<int:pk>/pdf/', budget_pdf, name='budget-pdf'),

    # Final invoice endpoints
    path('works/<int:pk>/final-invoice/', work_final_invoice, name='work-final-invoice'),
    path('final-invoices/<int:pk>/', final_invoice_detail, name='final-invoice-detail'),
    path('final-invoices/<int:pk>/extra-items/', final_invoice_extra_items, name='final-invoice-extra-items'),
    path('final-invoices/extra-items/<int:pk>/', final_invoice_extra_item_detail, name='final-invoice-extra-item-detail'),
    path('final-invoices/<int:pk>/pdf/', final_invoice_pdf, name='final-invoice-pdf'),
    path('final-invoices/<int:pk>/preview/', final_invoice_preview, name='final-invoice-preview'),
    path('final-invoices/<int:pk>/email/', final_invoice_email, name='final-invoice-email'),

    # Budget item catalog
    path('budget-items/', budget_item_list_create, name='budget-item-list-create'),
    path('budget-items/categories/', budget_item_categories, name='budget-item-categories'),
    path('budget-items/<int:pk>/', budget_item_detail, name='budget-item-detail'),
    path('budget-items/<int:pk>/toggle/', budget_item_toggle, name='budget-item-toggle'),

    # Budget notes
    path('budgets/<int:pk>/notes/', budget_note_list_create, name='budget-note-list-create'),
    path('budgets/<int:pk>/notes/stats/', budget_note_stats, name='budget-note-stats'),
    path('budget-notes/alerts/', budget_note_alerts, name='budget-note-alerts'),
    path('budget-notes/<int:pk>/', budget_note_detail, name='budget-note-detail'),
]
