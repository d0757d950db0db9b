"""WSGI entrypoint (gunicorn bizhub.wsgi)."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "bizhub.settings")

application = get_wsgi_application()
