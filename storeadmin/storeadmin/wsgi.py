"""
WSGI config for the storeadmin project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'storeadmin.settings')

application = get_wsgi_application()
