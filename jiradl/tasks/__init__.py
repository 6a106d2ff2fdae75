"""Celery tasks. Imported by the worker through celery_app.conf.imports."""
