"""
SoWhat scan client package.

Drives server-side accessibility scans (page capture followed by rule
evaluation) to completion from a client process.
"""

__all__ = ["cli", "config"]
