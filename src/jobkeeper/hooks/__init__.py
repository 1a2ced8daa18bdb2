"""Observability hooks for remote calls and polling."""

from .observability import EventLogger, HookEvent

__all__ = ["EventLogger", "HookEvent"]
