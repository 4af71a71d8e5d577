"""WSGI entrypoint for the AIONET backend."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "aionet.settings")

application = get_wsgi_application()
