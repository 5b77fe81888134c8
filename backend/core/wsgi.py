# backend/core/wsgi.py
"""
WSGI config for the agreements backend.

Environment variables are loaded by settings (python-dotenv).
"""

import os
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core.settings")

from django.core.wsgi import get_wsgi_application  # noqa: E402

application = get_wsgi_application()
