"""FastAPI server adapter for weaver.

This module exposes a REST API over :class:`weaver.service.WeaveService`.

Design intent:
- Keep graph semantics in `weaver.core.*` and `weaver.runtime.*`
- Keep server-specific concerns (routing, CORS, error mapping) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from weaver.server.app import create_app
