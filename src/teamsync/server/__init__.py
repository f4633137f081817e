"""
Central copy HTTP server.
"""

from .app import CentralServer, create_app

__all__ = ['CentralServer', 'create_app']
