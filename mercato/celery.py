"""
Celery configuration for the Mercato backend.

Runs the scheduled money-movement jobs: weekly payout scheduling, payout
processing and retries, escrow release after the holding period and the
monthly settlement run.
"""

import os

from celery import Celery
from celery.schedules import crontab


os.environ.setdefault("DJANGO_SETTINGS_MODULE", "mercato.settings")

app = Celery("mercato")

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()

app.conf.beat_schedule = {
    "release-eligible-escrow": {
        "task": "payment_system.tasks.release_eligible_escrow_task",
        "schedule": crontab(minute=15),
        "options": {"expires": 30.0 * 60.0, "queue": "payment_tasks"},
    },
    "schedule-weekly-payouts": {
        "task": "payment_system.tasks.schedule_payouts_task",
        "schedule": crontab(hour=2, minute=0, day_of_week="monday"),
        "kwargs": {"frequency": "weekly"},
        "options": {"expires": 60.0 * 60.0, "queue": "payment_tasks"},
    },
    "process-scheduled-payouts": {
        "task": "payment_system.tasks.process_scheduled_payouts_task",
        "schedule": crontab(minute=0),
        "options": {"expires": 30.0 * 60.0, "queue": "payment_tasks"},
    },
    "retry-failed-payouts": {
        "task": "payment_system.tasks.retry_failed_payouts_task",
        "schedule": crontab(hour=6, minute=0),
        "options": {"expires": 60.0 * 60.0, "queue": "payment_tasks"},
    },
    "generate-monthly-settlements": {
        "task": "payment_system.tasks.generate_monthly_settlements_task",
        "schedule": crontab(hour=3, minute=0, day_of_month="1"),
        "options": {"expires": 6 * 60.0 * 60.0, "queue": "payment_tasks"},
    },
}

app.conf.update(
    task_routes={
        "payment_system.tasks.*": {"queue": "payment_tasks"},
        "marketplace.tasks.*": {"queue": "marketplace_tasks"},
        "sellers.tasks.*": {"queue": "marketplace_tasks"},
    },
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    result_expires=60 * 60 * 24,
    worker_max_tasks_per_child=1000,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=30 * 60,
    task_soft_time_limit=25 * 60,
    beat_scheduler="django_celery_beat.schedulers:DatabaseScheduler",
)
