"""
Lifecycle hooks registry for models.
"""

from .dispatcher import EVENTS, POST_DELETE, POST_SAVE, PRE_DELETE, PRE_SAVE, HookDispatcher, hooks

__all__ = [
    "EVENTS",
    "HookDispatcher",
    "POST_DELETE",
    "POST_SAVE",
    "PRE_DELETE",
    "PRE_SAVE",
    "hooks",
]
