"""
Hook dispatcher coordinating model lifecycle events.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Type

if TYPE_CHECKING:
    from ..core.model import Model


HookHandler = Callable[..., None]

PRE_SAVE = "pre_save"
POST_SAVE = "post_save"
PRE_DELETE = "pre_delete"
POST_DELETE = "post_delete"
EVENTS = (PRE_SAVE, POST_SAVE, PRE_DELETE, POST_DELETE)


class HookDispatcher:
    """
    Maintains global and per-model hook handlers.

    Handlers are called as ``handler(instance, **context)``; save events
    carry ``created`` and every event carries ``database``.
    """

    def __init__(self) -> None:
        self._global_handlers: Dict[str, List[HookHandler]] = defaultdict(list)
        self._model_handlers: Dict[Type["Model"], Dict[str, List[HookHandler]]] = defaultdict(
            lambda: defaultdict(list)
        )

    def register(
        self, event: str, handler: HookHandler, *, model: Optional[Type["Model"]] = None
    ) -> None:
        if event not in EVENTS:
            raise ValueError(f"Unknown hook event '{event}'; expected one of {', '.join(EVENTS)}")
        if model:
            self._model_handlers[model][event].append(handler)
        else:
            self._global_handlers[event].append(handler)

    def fire(self, event: str, instance: "Model", **context: Any) -> None:
        handlers = list(self._global_handlers.get(event, []))
        handlers.extend(self._model_handlers.get(type(instance), {}).get(event, []))
        for handler in handlers:
            handler(instance, **context)

    def clear(self) -> None:
        self._global_handlers.clear()
        self._model_handlers.clear()


hooks = HookDispatcher()
