"""Entry point for gunicorn: ``gunicorn -c CarMeet/gunicorn_config.py CarMeet.wsgi:app``"""
from CarMeet.app import create_app

app = create_app()
