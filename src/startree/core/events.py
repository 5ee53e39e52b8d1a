"""
Events - Synchronous Observable Dispatch

The Events mixin gives any object named events with subscribe/trigger
semantics. Dispatch is synchronous and re-entrant: a handler that mutates
another observable causes that observable's handlers to run before trigger()
returns.

Listeners carry a priority (higher = called first). Listeners with equal
priority run in registration order, and specific listeners run before
"all" listeners registered at the same priority.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..app.configuration import get_config

logger = logging.getLogger(__name__)

ALL = "all"

# Priority used by the hierarchy for its own propagation listeners, so that
# a node's observers see an event before it is propagated anywhere else
PROPAGATION_PRIORITY = -100

# Priority for listeners that absorb a parent's new raw value into a child,
# so that observers of the parent already see the child in its new state
ABSORB_PRIORITY = 100


@dataclass(eq=False)
class Listener:
    """A callback registered for one event name"""
    callback: Callable
    context: Any = None
    priority: int = 0
    once: bool = False
    fired: bool = False

    def matches(self, callback: Optional[Callable], context: Any) -> bool:
        if callback is not None and self.callback != callback:
            return False
        if context is not None and self.context is not context:
            return False
        return True


class Events:
    """
    Observable event capabilities mixin.

    Example:
        class Counter(Events):
            ...

        counter.on("change", render)
        counter.trigger("change", counter)
    """

    @property
    def _listeners(self) -> Dict[str, List[Listener]]:
        listeners = self.__dict__.get("_event_listeners")
        if listeners is None:
            listeners = self.__dict__["_event_listeners"] = {}
        return listeners

    def on(self, name: str, callback: Callable, context: Any = None, priority: int = 0) -> "Events":
        """
        Subscribe callback to one or more space separated event names.

        Args:
            name: Event name(s); "all" receives every event with its name first
            callback: Function called with the trigger arguments
            context: Owner tag, used to remove listeners in bulk
            priority: Higher priorities are called first
        """
        for event_name in name.split():
            self._listeners.setdefault(event_name, []).append(
                Listener(callback=callback, context=context, priority=priority)
            )
        return self

    def once(self, name: str, callback: Callable, context: Any = None, priority: int = 0) -> "Events":
        """Subscribe callback for a single dispatch of each named event"""
        for event_name in name.split():
            self._listeners.setdefault(event_name, []).append(
                Listener(callback=callback, context=context, priority=priority, once=True)
            )
        return self

    def off(self, name: Optional[str] = None, callback: Optional[Callable] = None,
            context: Any = None) -> "Events":
        """Remove listeners matching every argument given"""
        names = name.split() if name else list(self._listeners)
        for event_name in names:
            listeners = self._listeners.get(event_name)
            if not listeners:
                continue
            remaining = [l for l in listeners if not l.matches(callback, context)]
            if remaining:
                self._listeners[event_name] = remaining
            else:
                del self._listeners[event_name]
        return self

    def listen_to(self, other: "Events", name: str, callback: Callable, priority: int = 0) -> "Events":
        """Subscribe to another object's events, tagged with self for stop_listening()"""
        other.on(name, callback, self, priority)
        return self

    def stop_listening(self, other: "Events", name: Optional[str] = None,
                       callback: Optional[Callable] = None) -> "Events":
        """Remove listeners previously installed on other with listen_to()"""
        other.off(name, callback, self)
        return self

    def has_listeners(self, name: Optional[str] = None) -> bool:
        if name is None:
            return any(self._listeners.values())
        return bool(self._listeners.get(name))

    def trigger(self, name: str, *args) -> "Events":
        """
        Dispatch one or more space separated events synchronously.

        Handler exceptions propagate to the caller.
        """
        for event_name in name.split():
            self._dispatch(event_name, args)
        return self

    def _dispatch(self, name: str, args: tuple) -> None:
        if get_config().trace_events:
            logger.debug(f"{self!r} -> {name}")

        calls = [(listener, args) for listener in self._listeners.get(name, ())]
        if name != ALL:
            calls.extend((listener, (name,) + args) for listener in self._listeners.get(ALL, ()))
        if not calls:
            return

        # Stable sort keeps specific listeners ahead of "all" on equal priority
        calls.sort(key=lambda call: -call[0].priority)

        for listener, call_args in calls:
            if listener.once:
                if listener.fired:
                    continue
                listener.fired = True
                self._forget(listener)
            listener.callback(*call_args)

    def _forget(self, listener: Listener) -> None:
        for event_name, listeners in list(self._listeners.items()):
            if listener in listeners:
                listeners.remove(listener)
                if not listeners:
                    del self._listeners[event_name]


__all__ = ["Events", "Listener", "ALL", "PROPAGATION_PRIORITY", "ABSORB_PRIORITY"]
