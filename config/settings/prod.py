"""Production settings for the booking engine.

This module extends the base settings with production specific
configuration. Ensure that sensitive values are provided via
environment variables and that security settings are appropriate for
production use.
"""

from .base import *  # noqa: F401,F403

# Never run with debug enabled in production
DEBUG = False

SECRET_KEY = get_env('DJANGO_SECRET_KEY', required=True)  # noqa: F405

# Allowed hosts should be defined explicitly via environment variable
ALLOWED_HOSTS = [host.strip() for host in get_env('DJANGO_ALLOWED_HOSTS', required=True).split(',') if host.strip()]  # noqa: F405

# Row locks for the per-resource critical section need a real server
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': get_env('POSTGRES_DB', required=True),  # noqa: F405
        'USER': get_env('POSTGRES_USER', required=True),  # noqa: F405
        'PASSWORD': get_env('POSTGRES_PASSWORD', required=True),  # noqa: F405
        'HOST': get_env('DB_HOST', 'localhost'),  # noqa: F405
        'PORT': get_env('DB_PORT', '5432'),  # noqa: F405
        'CONN_MAX_AGE': 60,
        'OPTIONS': {
            # Fail a stuck lock wait instead of hanging the request; retried as transient
            'options': f"-c lock_timeout={get_env('DB_LOCK_TIMEOUT_MS', '5000')}",  # noqa: F405
        },
    }
}

SIMPLE_JWT['SIGNING_KEY'] = get_env('JWT_SIGNING_KEY', required=True)  # noqa: F405

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
