"""
Configuration Package

Contains all configuration-related files and settings.

This package separates two types of configuration:
- app_config.py: Flask application configuration (environment-based)
- game_settings.py: Game rules and constants (business logic)
"""

from .app_config import Config, DevelopmentConfig, ProductionConfig, TestingConfig, config
from .game_settings import MAX_LEVEL, LEVEL_CODES, level_code, difficulty_label, validate_level_code_table

__all__ = [
    # App configuration
    'Config', 'DevelopmentConfig', 'ProductionConfig', 'TestingConfig', 'config',
    # Game rules
    'MAX_LEVEL', 'LEVEL_CODES', 'level_code', 'difficulty_label', 'validate_level_code_table'
]
