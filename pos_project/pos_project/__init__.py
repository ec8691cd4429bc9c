# Celery instance is defined in pos_project/celery.py
# Importing it here makes sure shared tasks bind to it when Django starts
from .celery import celery_app

__all__ = ("celery_app",)

""" Start a worker with "celery -A pos_project worker -l info"
    and the scheduler with "celery -A pos_project beat -l info". """
