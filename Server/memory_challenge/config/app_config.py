"""
Configuration Management Module

Centralized configuration management following the 12-factor app methodology.
All configuration is loaded from environment variables with sensible defaults.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from config.env (optional)
load_dotenv(Path(__file__).with_name('config.env'))


class Config:
    """Base configuration class with all settings."""

    # Flask Settings
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    TESTING = False

    # Server Settings
    HOST = os.getenv('HOST', '127.0.0.1')
    PORT = int(os.getenv('PORT', 5000))

    # Leaderboard Storage Settings (in-memory store when MONGO_URI is unset)
    MONGO_URI = os.getenv('MONGO_URI')
    MONGO_DB_NAME = os.getenv('MONGO_DB_NAME', 'memory_challenge')

    # Remote scoreboard (the in-process leaderboard is used when unset)
    SCOREBOARD_URL = os.getenv('SCOREBOARD_URL')
    SCOREBOARD_TIMEOUT_SECONDS = float(os.getenv('SCOREBOARD_TIMEOUT_SECONDS', 10))

    # Leaderboard API rate limits (Flask-Limiter, per client address)
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_HEADERS_ENABLED = True
    LEADERBOARD_READ_LIMIT = os.getenv('LEADERBOARD_READ_LIMIT', '100 per 15 minutes')
    LEADERBOARD_SUBMIT_LIMIT = os.getenv('LEADERBOARD_SUBMIT_LIMIT', '5 per minute')

    # Player progress storage
    PROGRESS_DIR = os.getenv('PROGRESS_DIR', 'progress')

    # Logging Settings
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_DIR = os.getenv('LOG_DIR', 'logs')


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DEBUG = True
    MONGO_URI = None
    SCOREBOARD_URL = None


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
