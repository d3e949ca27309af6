from .base import *  # noqa
from .base import BASE_DIR, DB_ENGINE
from .base import REST_FRAMEWORK as BASE_REST_FRAMEWORK

# Test settings: SQLite unless DATABASE_ENGINE=postgres is set explicitly.
# Threaded row-locking tests skip themselves on SQLite.
DEBUG = False

if DB_ENGINE.lower() != "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "test_db.sqlite3",
        }
    }

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Plain storage so tests never need collectstatic manifests
STORAGES = {
    "default": {
        "BACKEND": "django.core.files.storage.FileSystemStorage",
    },
    "staticfiles": {
        "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
    },
}

# Slightly relax throttling for tests to reduce flakiness
REST_FRAMEWORK = {**BASE_REST_FRAMEWORK}
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    **BASE_REST_FRAMEWORK.get("DEFAULT_THROTTLE_RATES", {}),
    "user": "10000/min",
    "anon": "10000/min",
    "catalog": "10000/min",
    "inventory": "10000/min",
    "inventory_write": "10000/min",
}
