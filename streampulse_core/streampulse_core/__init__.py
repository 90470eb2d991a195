"""
streampulse_core package.

Holds runtime plumbing for the tray application.
"""

__all__ = [
    "logger",
]
