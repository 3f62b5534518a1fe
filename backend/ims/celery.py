"""
Celery application for the ims project.

Run a worker with ``celery -A ims worker`` and the monthly summary
schedule with ``celery -A ims beat``.
"""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'ims.settings')

app = Celery('ims')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
