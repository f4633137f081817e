"""
Test fixtures for TeamSync.

Provides reusable workspace data and an in-memory transport.
"""

from .workspace_fixtures import WorkspaceFixtures, FakeTransport

__all__ = [
    "WorkspaceFixtures",
    "FakeTransport",
]
