"""
Main URL mapping configuration file.

The content operations are served by the routing layer in front of this
project, only the admin is mounted here.
"""

from django.contrib import admin
from django.urls import path

urlpatterns = [
    # django-admin:
    path('admin/', admin.site.urls),
]
