"""
ASGI config for the healthoffice project.

Only plain HTTP is served; every request is a short synchronous
transaction so no WebSocket routing is wired here.
"""
import os

from django.core.asgi import get_asgi_application  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "healthoffice.settings")

application = get_asgi_application()
