"""WSGI config for the septicworks project."""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'septicworks.config.settings')

application = get_wsgi_application()
