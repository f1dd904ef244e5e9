from django.urls import path
from .views import (
    work_maintenance_list, work_maintenance_schedule, work_maintenance_initialize_historical,
    visit_list, visit_detail, visit_media_upload, media_delete, visit_complete, visit_pdf,
)

urlpatterns = [
    # Per-work schedule
    path('works/<int:pk>/maintenance/', work_maintenance_list, name='work-maintenance-list'),
    path('works/<int:pk>/maintenance/schedule/', work_maintenance_schedule, name='work-maintenance-schedule'),
    path('works/<int:pk>/maintenance/initialize-historical/', work_maintenance_initialize_historical,
         name='work-maintenance-initialize-historical'),

    # Visits
    path('maintenance/', visit_list, name='maintenance-visit-list'),
    path('maintenance/media/<int:pk>/', media_delete, name='maintenance-media-delete'),
    path('maintenance/<int:pk>/', visit_detail, name='maintenance-visit-detail'),
    path('maintenance/<int:pk>/media/', visit_media_upload, name='maintenance-visit-media'),
    path('maintenance/<int:pk>/complete/', visit_complete, name='maintenance-visit-complete'),
    path('maintenance/<int:pk>/pdf/', visit_pdf, name='maintenance-visit-pdf'),
]
