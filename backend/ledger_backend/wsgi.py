"""
WSGI config for the ledger backend.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ledger_backend.settings")

application = get_wsgi_application()
