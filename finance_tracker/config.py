"""Configuration for the finance tracker application.

Values can be overridden through environment variables so the same code
runs locally, under tests and behind a real deployment.
"""

import os
from datetime import timedelta


class Config:
    SECRET_KEY = os.getenv('FINANCE_TRACKER_SECRET_KEY', 'change-this-secret')
    SQLALCHEMY_DATABASE_URI = os.getenv('FINANCE_TRACKER_DATABASE_URI', 'sqlite:///finance.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv('FINANCE_TRACKER_LOG_LEVEL', 'INFO')

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = os.getenv('FINANCE_TRACKER_SECURE_COOKIES', '0') == '1'
    REMEMBER_COOKIE_DURATION = timedelta(days=10)

    # Brute force protection for /api/auth/login
    LOGIN_MAX_ATTEMPTS = 5
    LOGIN_LOCKOUT_SECONDS = 60

    DEFAULT_CURRENCY = 'USD'


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    LOG_LEVEL = 'DEBUG'
