"""
FORMCOACH Core Module
"""

from .config import settings, Settings

__all__ = [
    'settings',
    'Settings',
]
