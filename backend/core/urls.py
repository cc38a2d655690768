"""
Root URL configuration. All endpoints live under /api/.
"""
from django.urls import path, include

urlpatterns = [
    path('api/', include('files.urls')),
]
