"""Settings used by the test suite."""

from .settings import *  # noqa: F401,F403

DEBUG = False
SECURE_SSL_REDIRECT = False
ALLOWED_HOSTS = ['localhost', '127.0.0.1', 'testserver']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

JWT_SECRET = 'test-secret'
CLIENT_URL = 'http://client.test'

CLOUDINARY_STORAGE = {
    'CLOUD_NAME': 'demo',
    'API_KEY': 'key',
    'API_SECRET': 'secret',
}

FIREBASE_CREDENTIALS = {}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
