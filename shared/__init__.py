"""
FORMCOACH Shared Module

Common utilities used across the service.
"""

from .utils import setup_logger, success_response

__all__ = [
    'setup_logger',
    'success_response',
]
