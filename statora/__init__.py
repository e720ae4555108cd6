"""Manage PHP, Composer and PHP extension versions per project."""

__version__ = "1.0.5"