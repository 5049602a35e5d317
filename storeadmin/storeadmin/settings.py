"""
Django settings for the storeadmin project.

Values come from the environment, optionally loaded from a ``.env`` file.
Carrier settings are grouped under ``SHIPPING`` and read once into
``shipping.config.ShippingConfig``.
"""

import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR.parent / '.env')


def env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-storeadmin-development-key')

DEBUG = env_bool('DJANGO_DEBUG', True)

ALLOWED_HOSTS = [h.strip() for h in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if h.strip()]


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'rest_framework_simplejwt',
    'django_filters',
    'shipping.apps.ShippingAppConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'storeadmin.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'storeadmin.wsgi.application'


DATABASES = {
    'default': {
        'ENGINE': os.getenv('DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.getenv('DB_NAME', str(BASE_DIR / 'db.sqlite3')),
        'USER': os.getenv('DB_USER', ''),
        'PASSWORD': os.getenv('DB_PASSWORD', ''),
        'HOST': os.getenv('DB_HOST', ''),
        'PORT': os.getenv('DB_PORT', ''),
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('DJANGO_TIME_ZONE', 'Asia/Kolkata')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_FILTER_BACKENDS': [
        'django_filters.rest_framework.DjangoFilterBackend',
    ],
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 25,
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=int(os.getenv('JWT_ACCESS_MINUTES', '60'))),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=int(os.getenv('JWT_REFRESH_DAYS', '7'))),
}


DJANGO_ENV = os.getenv('DJANGO_ENV', 'development')

SHIPPING = {
    'DELHIVERY_API_TOKEN': os.getenv('DELHIVERY_API_TOKEN') or os.getenv('DELHIVERY_AUTH_TOKEN', ''),
    'DELHIVERY_ENVIRONMENT': os.getenv(
        'DELHIVERY_ENVIRONMENT', 'production' if DJANGO_ENV == 'production' else 'staging'
    ),
    'DELHIVERY_BASE_URL': os.getenv('DELHIVERY_BASE_URL', ''),
    'WAYBILL_MIN_STOCK': int(os.getenv('WAYBILL_MIN_STOCK', '100')),
    'WAYBILL_MAX_PER_REQUEST': 10000,
    'WAYBILL_RESERVATION_TTL_MINUTES': int(os.getenv('WAYBILL_RESERVATION_TTL_MINUTES', '15')),
    'DEFAULT_WEIGHT_GRAMS': 500,
    'DEFAULT_DIMENSIONS_CM': (10, 10, 10),
    'DEFAULT_SHIPPING_MODE': os.getenv('DEFAULT_SHIPPING_MODE', 'Surface'),
    'DELIVERY_LEAD_DAYS': 7,
    'DEMO_MODE_WHEN_UNCONFIGURED': env_bool('DEMO_MODE_WHEN_UNCONFIGURED', DEBUG),
    'REQUEST_TIMEOUT_SECONDS': float(os.getenv('DELHIVERY_TIMEOUT_SECONDS', '30')),
    'SELLER_NAME': os.getenv('SELLER_NAME', ''),
    'SELLER_ADDRESS': os.getenv('SELLER_ADDRESS', ''),
    'SELLER_GST': os.getenv('SELLER_GST', ''),
}


LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'shipping': {
            'handlers': ['console'],
            'level': os.getenv('SHIPPING_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
