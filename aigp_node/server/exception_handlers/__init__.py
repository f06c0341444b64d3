"""
Exception handlers for the AIGP node server.

This package contains the handlers that map governance errors to HTTP
responses and a setup function to register them with the FastAPI application.
"""

from .global_handler import setup_exception_handlers

__all__ = ["setup_exception_handlers"]
