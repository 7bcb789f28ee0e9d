"""Weaver.

A workflow graph model and trace engine:
- immutable weave snapshots with copy-on-write operations
- a small gate language and a wave-based trace engine
- file-backed persistence, a REST API and a JSON CLI
"""

__version__ = "0.1.0"

from weaver.config import WeaverSettings

__all__ = ["__version__", "WeaverSettings"]
