"""
Command-line interface for California local regression analysis.
"""
from .app import app, main

__all__ = ['app', 'main']
