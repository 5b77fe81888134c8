# backend/core/asgi.py
"""
ASGI config (HTTP only). Signing events are not pushed to clients, so there is
no WebSocket routing here.
"""

import os
from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core.settings")

application = get_asgi_application()
