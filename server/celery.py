"""Celery entry point for content lifecycle workers.

Run a worker with::

    celery -A server worker --loglevel=info
"""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'server.settings')

app = Celery('server')

# Every `CELERY_*` django setting configures the app:
app.config_from_object('django.conf:settings', namespace='CELERY')

# Picks up `tasks.py` modules of all installed apps:
app.autodiscover_tasks()
