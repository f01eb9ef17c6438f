"""Test settings.

File-backed SQLite, eager Celery and the in-memory notification sender, so
the whole lifecycle including notification delivery runs inside a test.
The test database lives in a file so threaded tests share it.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key-not-for-production'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'test_db.sqlite3',  # noqa: F405
        'TEST': {'NAME': BASE_DIR / 'test_db.sqlite3'},  # noqa: F405
        'OPTIONS': {'transaction_mode': 'IMMEDIATE', 'timeout': 20},
    }
}

SIMPLE_JWT = {**SIMPLE_JWT, 'SIGNING_KEY': SECRET_KEY}  # noqa: F405

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

BOOKING_ENGINE = {
    **BOOKING_ENGINE,  # noqa: F405
    'TRANSIENT_RETRIES': 2,
    'RETRY_BACKOFF': 0,
    'NOTIFICATION_SENDER': 'apps.notifications.senders.LocmemSender',
}

TIME_ZONE = 'UTC'

LOGGING['handlers']['console']['level'] = 'WARNING'  # noqa: F405
