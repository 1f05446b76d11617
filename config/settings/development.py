# config/settings/development.py

from .base import *  # noqa: F401,F403
from .base import env, BASE_DIR, LOGGING

# === DEVELOPMENT ===

DEBUG = True

ALLOWED_HOSTS = ['localhost', '127.0.0.1', '0.0.0.0']

# === DATABASE ===

# PostgreSQL by default (same engine as production)
if env('DATABASE_URL', default=None):
    import dj_database_url

    DATABASES = {'default': dj_database_url.parse(env('DATABASE_URL'), conn_max_age=600)}
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': env('DB_NAME', default='fallo'),
            'USER': env('DB_USER', default='fallo'),
            'PASSWORD': env('DB_PASSWORD', default='fallo'),
            'HOST': env('DB_HOST', default='localhost'),
            'PORT': env('DB_PORT', default='5432'),
            'OPTIONS': {
                'sslmode': 'prefer',
            },
            'CONN_MAX_AGE': 60,
        }
    }

# SQLite only when explicitly requested
if env('USE_SQLITE', cast=bool, default=False):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

# === LOGGING ===

LOGGING['handlers']['console']['level'] = 'DEBUG'
LOGGING['root']['level'] = 'DEBUG'
LOGGING['loggers']['apps']['level'] = 'DEBUG'

# === CACHE ===

# In-memory cache in development (Redis optional)
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'fallo-dev-cache',
    }
}

# Use Redis when it answers
if env('REDIS_URL', default=None):
    import redis

    try:
        redis.from_url(env('REDIS_URL')).ping()
    except redis.RedisError as e:
        print(f"Redis not available ({e}), using local memory cache")
    else:
        CACHES['default'] = {
            'BACKEND': 'django_redis.cache.RedisCache',
            'LOCATION': env('REDIS_URL'),
            'OPTIONS': {
                'CLIENT_CLASS': 'django_redis.client.DefaultClient',
            }
        }

# Simplified channel layer for development
CHANNEL_LAYERS = {
    'default': {
        'BACKEND': 'channels.layers.InMemoryChannelLayer'
    }
}

SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

# === DJANGO EXTENSIONS ===

SHELL_PLUS_IMPORTS = [
    'from apps.core.utils import *',
    'from apps.board.reorder_service import ReorderService, ReorderRequest',
]
