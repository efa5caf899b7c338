# backend/wsgi.py
from siteadmin import create_app

app = create_app()
