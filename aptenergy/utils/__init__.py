from __future__ import annotations

from .console import LogHandler, Progress, console

__all__ = ['LogHandler', 'Progress', 'console']
