"""
WSGI config for the Mediku project.

It exposes the WSGI callable as a module-level variable named ``application``.
WebSocket traffic needs the ASGI entrypoint in ``mediku.asgi`` instead.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'mediku.settings')

application = get_wsgi_application()
