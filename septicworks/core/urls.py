from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, user_me, health,
    staff_list_create, staff_detail,
    setting_list_create, setting_detail,
    audit_log_list, audit_log_detail,
    attendance_list_create, attendance_detail, attendance_summary,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),
    path('health/', health, name='health'),

    # Staff endpoints
    path('staff/', staff_list_create, name='staff-list-create'),
    path('staff/<int:pk>/', staff_detail, name='staff-detail'),

    # Attendance endpoints
    path('attendance/', attendance_list_create, name='attendance-list-create'),
    path('attendance/summary/', attendance_summary, name='attendance-summary'),
    path('attendance/<int:pk>/', attendance_detail, name='attendance-detail'),

    # Setting endpoints
    path('settings/', setting_list_create, name='setting-list-create'),
    path('settings/<int:pk>/', setting_detail, name='setting-detail'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
    path('audit-logs/<int:pk>/', audit_log_detail, name='audit-log-detail'),
]
