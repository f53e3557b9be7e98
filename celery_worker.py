#!/usr/bin/env python3
"""
Celery Worker Entry Point
Run with: celery -A celery_worker.celery worker --loglevel=info
Or: python celery_worker.py
"""
from imd_reports import create_app
from imd_reports.extensions import celery

# Create Flask app so tasks run with its config and database
app = create_app()

# Import tasks so Celery can discover them
from tasks import report_tasks  # noqa: E402,F401

if __name__ == '__main__':
    celery.worker_main([
        'worker',
        '--loglevel=info',
        '--concurrency=2'
    ])
