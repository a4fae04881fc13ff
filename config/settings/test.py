"""Test settings.

SQLite, the local-memory cache and eager Celery so the suite runs without
external services.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'booking-engine-tests',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

BOOKING_ENGINE = {
    **BOOKING_ENGINE,  # noqa: F405
    'RATE_DEFAULTS': {
        'pricing.serviceFeeRate': '0.10',
        'pricing.taxRate': '0.15',
        'pricing.currency': 'USD',
        'pricing.roundingQuantum': '0.01',
        'booking.minimumStay': 1,
    },
    'COMMIT_MAX_ATTEMPTS': 3,
}

LOGGING['root']['level'] = 'ERROR'  # noqa: F405
LOGGING['loggers']['apps']['level'] = 'WARNING'  # noqa: F405
LOGGING['loggers']['shared']['level'] = 'WARNING'  # noqa: F405
