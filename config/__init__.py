# config/__init__.py
"""
Configuration package for the compliance tracker.
"""

from .base import Config, DevelopmentConfig, ProductionConfig, TestingConfig

__all__ = ["Config", "DevelopmentConfig", "TestingConfig", "ProductionConfig"]
