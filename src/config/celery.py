"""
Celery do FactoryFlow: worker e beat do relay do outbox.

DJANGO_SETTINGS_MODULE precisa existir antes da app para que as settings
com prefixo CELERY_ (broker, CELERY_BEAT_SCHEDULE) sejam lidas.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("factoryflow")
app.config_from_object("django.conf:settings", namespace="CELERY")

# modules.orders.tasks registra "orders.relay_outbox_events"
app.autodiscover_tasks()
