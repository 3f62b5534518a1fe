"""
URL configuration for the ims project.

All API endpoints live under /api/ (see inventory.urls).
"""
from django.contrib import admin
from django.http import JsonResponse
from django.urls import include, path


def health(request):
    return JsonResponse({'status': 'ok'})


urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('inventory.urls')),
    path('api/health/', health, name='health'),
]
