"""
optilock.events  ──  Decorators for Record write outcomes

    @on.create(Invoice)
    def stamped(invoice): ...

    @on.conflict(Invoice)
    def lost_race(invoice): ...   # update or delete hit 0 rows

Handlers run inline, after the statement has committed, in the thread
that issued the write.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Callable, Dict, List, Type

if TYPE_CHECKING:
    from .core.record import Record

logger = logging.getLogger(__name__)

EVENT_TYPES = ("create", "update", "conflict")


class EventRegistry:
    """Central registry for event handlers"""

    def __init__(self):
        # Maps event type -> record class -> handlers (registration order)
        self._handlers: Dict[str, Dict[type, List[Callable]]] = {
            event_type: defaultdict(list) for event_type in EVENT_TYPES
        }

    def register(
        self,
        event_type: str,
        record_classes: tuple[Type[Record], ...],
        handler: Callable,
    ) -> None:
        """Register a handler for specific record classes"""
        for cls in record_classes:
            handlers = self._handlers[event_type][cls]
            if handler not in handlers:
                handlers.append(handler)

    def unregister(self, handler: Callable) -> None:
        for by_class in self._handlers.values():
            for handlers in by_class.values():
                if handler in handlers:
                    handlers.remove(handler)

    def emit(self, event_type: str, instance: Record) -> None:
        """Emit event to all matching handlers, parent classes included"""
        seen: List[Callable] = []
        for cls in type(instance).__mro__:
            for handler in self._handlers[event_type].get(cls, ()):
                if handler not in seen:
                    seen.append(handler)

        for handler in seen:
            logger.debug("%s handler %s for %s", event_type, getattr(handler, "__name__", handler), type(instance).__name__)
            handler(instance)


# Global registry instance
_registry = EventRegistry()


class OnDecorator:
    """Namespace for event decorators"""

    @staticmethod
    def _decorator(event_type: str, record_classes: tuple) -> Callable:
        def decorator(func: Callable) -> Callable:
            _registry.register(event_type, record_classes, func)
            return func

        return decorator

    @staticmethod
    def create(*record_classes: Type[Record]) -> Callable:
        """Decorator for handling record creation events"""
        return OnDecorator._decorator("create", record_classes)

    @staticmethod
    def update(*record_classes: Type[Record]) -> Callable:
        """Decorator for handling successful version-checked updates"""
        return OnDecorator._decorator("update", record_classes)

    @staticmethod
    def conflict(*record_classes: Type[Record]) -> Callable:
        """Decorator for handling writes that matched no row"""
        return OnDecorator._decorator("conflict", record_classes)


# Export the decorator interface
on = OnDecorator()


# Hook into Record lifecycle
def emit_create(instance: Record) -> None:
    _registry.emit("create", instance)


def emit_update(instance: Record) -> None:
    _registry.emit("update", instance)


def emit_conflict(instance: Record) -> None:
    _registry.emit("conflict", instance)
