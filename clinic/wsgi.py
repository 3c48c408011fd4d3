"""
WSGI config for the clinic project.

Exposes the WSGI callable as a module-level variable named ``application``.
WebSocket notifications need the ASGI entrypoint in ``clinic.asgi``.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'clinic.settings')

application = get_wsgi_application()
