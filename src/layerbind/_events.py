from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Callable

    from ._mapping import InjectionMapping

    Listener = Callable[["Event"], object]
    Guard = Callable[["Event"], bool]


class Event:
    def __init__(self, type: str, data: Any = None) -> None:  # noqa: A002
        self.type = type
        self.data = data

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.type!r})"


class MappingEvent(Event):
    """Announces a change in an Injector's mapping table.

    `MAPPING_OVERRIDE` is dispatched when an existing mapping is replaced without
    first unmapping it. Overriding is usually a sign of a wiring bug; deliberate
    changes should unmap first.
    """

    MAPPING_OVERRIDE = "mappingOverride"
    MAPPING_CREATED = "mappingCreated"
    MAPPING_DESTROYED = "mappingDestroyed"

    def __init__(self, type: str, mapped_type: Any, mapping: InjectionMapping) -> None:  # noqa: A002
        super().__init__(type)
        self.mapped_type = mapped_type
        self.mapping = mapping


class ContextModuleEvent(Event):
    """Dispatched by an application context as a module is registered with it."""

    REGISTER_MODULE = "registerModule"

    def __init__(self, type: str, context: Any, module_descriptor: Any) -> None:  # noqa: A002
        super().__init__(type)
        self.context = context
        self.module_descriptor = module_descriptor


class EventListener:
    """Subscription handle returned by `EventDispatcher.add_event_listener`."""

    def __init__(self, event_type: str, callback: Listener) -> None:
        self.event_type = event_type
        self.callback = callback
        self.guards: list[Guard] = []
        self.is_once = False

    def once(self) -> EventListener:
        """Remove this listener after its first delivery."""
        self.is_once = True
        return self

    def with_guards(self, *guards: Guard) -> EventListener:
        """Deliver only events for which every guard returns true."""
        self.guards.extend(guards)
        return self

    def accepts(self, event: Event) -> bool:
        return all(guard(event) for guard in self.guards)


class EventDispatcher:
    """Synchronous pub/sub channel keyed by event type string."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[EventListener]] = {}
        self._lock = threading.RLock()

    @property
    def listener_count(self) -> int:
        with self._lock:
            return sum(len(listeners) for listeners in self._listeners.values())

    def add_event_listener(self, event_type: str, callback: Listener) -> EventListener:
        _validate_event_type(event_type)
        listener = EventListener(event_type, callback)
        with self._lock:
            self._listeners.setdefault(event_type, []).append(listener)
        return listener

    def has_event_listener(self, event_type: str, callback: Listener | None = None) -> bool:
        with self._lock:
            listeners = self._listeners.get(event_type, [])
            if callback is None:
                return bool(listeners)
            return any(listener.callback == callback for listener in listeners)

    def remove_event_listener(self, event_type: str, callback: Listener) -> None:
        _validate_event_type(event_type)
        with self._lock:
            listeners = self._listeners.get(event_type)
            if not listeners:
                return
            remaining = [listener for listener in listeners if listener.callback != callback]
            if remaining:
                self._listeners[event_type] = remaining
            else:
                del self._listeners[event_type]

    def remove_all_event_listeners(self) -> None:
        with self._lock:
            self._listeners.clear()

    def dispatch_event(self, event: Event | str, data: Any = None) -> Event:
        """Deliver `event` to its listeners in subscription order.

        A bare event type string is wrapped into an `Event` carrying `data`.
        Listener exceptions propagate to the caller.
        """
        if not isinstance(event, Event):
            _validate_event_type(event)
            event = Event(event, data)

        with self._lock:
            snapshot = list(self._listeners.get(event.type, []))

        for listener in snapshot:
            if not listener.accepts(event):
                continue
            if listener.is_once:
                self._discard(listener)
            listener.callback(event)

        return event

    def _discard(self, listener: EventListener) -> None:
        with self._lock:
            listeners = self._listeners.get(listener.event_type, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(listener.event_type, None)


def _validate_event_type(event_type: object) -> None:
    if not isinstance(event_type, str) or not event_type:
        msg = f"Event type must be a non-empty string, got {event_type!r}"
        raise ValueError(msg)
