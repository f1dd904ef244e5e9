"""
URL configuration for the septicworks API.

Every app mounts its routes under api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Septic Works Admin Panel"
admin.site.site_title = "Septic Works Admin Portal"
admin.site.index_title = "Welcome to the Septic Works Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('septicworks.core.urls')),
    path('api/v1/', include('septicworks.works.urls')),
    path('api/v1/', include('septicworks.budgets.urls')),
    path('api/v1/', include('septicworks.finance.urls')),
    path('api/v1/', include('septicworks.banking.urls')),
    path('api/v1/', include('septicworks.payables.urls')),
    path('api/v1/', include('septicworks.maintenance.urls')),
    path('api/v1/reports/', include('septicworks.reports.urls')),
]

if settings.DEBUG:
    urlpatterns += [
        re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    ]
