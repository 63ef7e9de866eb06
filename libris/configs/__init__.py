#!/usr/bin/env python

"""
    Configurations for Libris

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import os


# Determine environment
TESTING = os.getenv("TESTING", "false").lower() == "true"

# API server configuration
SCHEME = 'http'
HOST = os.environ.get('LIBRIS_HOST', 'localhost')
PORT = int(os.environ.get('LIBRIS_PORT', 8080))
WORKERS = int(os.environ.get('LIBRIS_WORKERS', 1))
DEBUG = bool(int(os.environ.get('LIBRIS_DEBUG', 0)))
LOG_LEVEL = os.environ.get('LIBRIS_LOG_LEVEL', 'info')
SSL_CRT = os.environ.get('LIBRIS_SSL_CRT')
SSL_KEY = os.environ.get('LIBRIS_SSL_KEY')
ALLOWED_ORIGINS = os.environ.get(
    'LIBRIS_ALLOWED_ORIGINS', 'http://localhost:3000').split(',')

# Signs session tokens; must be overridden outside of development
SEED = os.environ.get('LIBRIS_SEED', 'libris-dev-seed')
SESSION_TTL = int(os.environ.get('LIBRIS_SESSION_TTL', 60 * 60 * 24 * 14))

# Document access policy
COOLDOWN_HOURS = int(os.environ.get('LIBRIS_COOLDOWN_HOURS', 24))
MAX_ATTEMPTS_LIMIT = 100

# Circulation
FINE_DUE_DAYS = int(os.environ.get('LIBRIS_FINE_DUE_DAYS', 30))

OPTIONS = {
    'host': HOST,
    'port': PORT,
    'log_level': LOG_LEVEL,
    'reload': DEBUG,
    'workers': WORKERS,
}
if SSL_CRT and SSL_KEY:
    OPTIONS['ssl_keyfile'] = SSL_KEY
    OPTIONS['ssl_certfile'] = SSL_CRT
    SCHEME = 'https'

DB_CONFIG = {
    'user': os.environ.get('DB_USER', 'postgres'),
    'password': os.environ.get('DB_PASSWORD'),
    'host': os.environ.get('DB_HOST', 'localhost'),
    'port': int(os.environ.get('DB_PORT', '5432')),
    'dbname': os.environ.get('DB_NAME', 'libris'),
}

# Database configuration
DB_URI = (
    "sqlite:///:memory:" if TESTING else
    'postgresql+psycopg2://{user}:{password}@{host}:{port}/{dbname}'.format(**DB_CONFIG)
)

__all__ = [
    'SCHEME', 'HOST', 'PORT', 'DEBUG', 'OPTIONS', 'DB_URI', 'DB_CONFIG',
    'TESTING', 'SEED', 'SESSION_TTL', 'COOLDOWN_HOURS', 'MAX_ATTEMPTS_LIMIT',
    'FINE_DUE_DAYS', 'ALLOWED_ORIGINS',
]
