# Overview: WSGI entry point.

# backend/wsgi.py
from tillpoint import create_app

app = create_app()
