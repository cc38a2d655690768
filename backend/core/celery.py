"""
Celery application for the tag hub.

Workers pick up tagging rewards when REWARDS_ASYNC_BONUS is on:
    celery -A core worker -l info
"""

import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'core.settings')

app = Celery('filetag_hub')

# CELERY_* keys in Django settings configure the app
app.config_from_object('django.conf:settings', namespace='CELERY')

# Finds files/tasks.py
app.autodiscover_tasks()
