"""
Celery application setup for the intake dossier backend.

Used only when USE_CELERY is enabled. Workers and the API share the same
broker/result backend through settings. Tasks live in dossier.tasks.

Start a worker with:
    celery -A dossier.celery_app worker -Q analysis --loglevel=info
"""
from celery import Celery
from kombu import Queue

from .config import settings

app = Celery(
    "dossier",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["dossier.tasks"],
)

app.conf.task_queues = (
    Queue(settings.celery_queue, routing_key=settings.celery_queue),
)

app.conf.update(
    # Redelivery after a worker crash is safe: the worker ignores non-pending records
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    # Hard ceiling above the per-call analysis timeout
    task_soft_time_limit=int(settings.analysis_timeout) + 30,
    task_time_limit=int(settings.analysis_timeout) + 60,
    task_default_queue=settings.celery_queue,
    result_expires=86400,
    timezone="UTC",
)
