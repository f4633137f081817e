"""
TeamSync - reconciliation and visibility engine for a shared team workspace.

This package provides:
- An immutable workspace snapshot model with its camelCase JSON codec
- Last-writer-wins reconciliation between a local replica and a central copy
- Per-viewer access scoping over the reporting hierarchy
- Diff-based notifications for team and report updates
"""

__version__ = "0.1.0"
__author__ = "TeamSync Team"

__all__ = [
    '__version__',
]
