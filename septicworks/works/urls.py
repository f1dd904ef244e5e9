from django.urls import path
from .views import (
    permit_list_create, permit_detail, permit_check,
    work_list_create, work_detail, work_change_status, work_history, work_statuses,
    notice_to_owner_list,
    work_note_list_create, work_note_detail, work_note_alerts,
    inspection_list_create, inspection_result,
    change_order_list_create, change_order_detail, change_order_send, change_order_respond,
    work_checklist, work_checklist_stats, work_checklist_batch,
)

urlpatterns = [
    # Permit endpoints
    path('permits/', permit_list_create, name='permit-list-create'),
    path('permits/check/', permit_check, name='permit-check'),
    path('permits/<int:pk>/', permit_detail, name='permit-detail'),

    # Work endpoints
    path('works/', work_list_create, name='work-list-create'),
    path('works/statuses/', work_statuses, name='work-statuses'),
    path('works/notice-to-owner/', notice_to_owner_list, name='work-notice-to-owner'),
    path('works/<int:pk>/', work_detail, name='work-detail'),
    path('works/<int:pk>/status/', work_change_status, name='work-change-status'),
    path('works/<int:pk>/history/', work_history, name='work-history'),

    # Review checklists
    path('works/checklists/stats/', work_checklist_stats, name='work-checklist-stats'),
    path('works/checklists/batch/', work_checklist_batch, name='work-checklist-batch'),
    path('works/<int:pk>/checklist/', work_checklist, name='work-checklist'),

    # Work notes
    path('works/<int:pk>/notes/', work_note_list_create, name='work-note-list-create'),
    path('notes/alerts/', work_note_alerts, name='work-note-alerts'),
    path('notes/<int:pk>/', work_note_detail, name='work-note-detail'),

    # Inspections
    path('works/<int:pk>/inspections/', inspection_list_create, name='inspection-list-create'),
    path('inspections/<int:pk>/result/', inspection_result, name='inspection-result'),

    # Change orders
    path('works/<int:pk>/change-orders/', change_order_list_create, name='change-order-list-create'),
    path('change-orders/<int:pk>/', change_order_detail, name='change-order-detail'),
    path('change-orders/<int:pk>/send/', change_order_send, name='change-order-send'),
    path('change-orders/<int:pk>/respond/', change_order_respond, name='change-order-respond'),
]
