from enum import Enum, auto
from typing import Any, Callable, Dict, Optional
import inspect
import logging
import uuid
import weakref

logger = logging.getLogger(__name__)


class AppEvent(Enum):
    """Application-wide events for the observer pattern."""
    TASK_CREATED = auto()
    TASK_DELETED = auto()
    TASKS_REPLACED = auto()
    ALARMS_RECONCILED = auto()
    NOTIFICATION_SCHEDULED = auto()
    NOTIFICATION_FIRED = auto()
    REFRESH_UI = auto()


class Subscription:
    """Represents an event subscription that can be unsubscribed.

    For lambdas and closures the Subscription holds the only strong
    reference to the callback, so it must be stored by the subscriber.
    """

    def __init__(
        self,
        event_bus: "EventBus",
        event: AppEvent,
        subscription_id: str,
        strong_ref: Optional[Callable[[Any], None]] = None,
    ):
        self._event_bus = event_bus
        self._event = event
        self._subscription_id = subscription_id
        self._active = True
        self._strong_ref = strong_ref

    @property
    def id(self) -> str:
        return self._subscription_id

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        """Unsubscribe this subscription."""
        if self._active:
            self._event_bus._unsubscribe_by_id(self._event, self._subscription_id)
            self._active = False
            self._strong_ref = None


def _make_ref(callback: Callable[[Any], None]) -> Callable[[], Optional[Callable[[Any], None]]]:
    """Weak reference for bound methods, strong for everything else."""
    if inspect.ismethod(callback):
        return weakref.WeakMethod(callback)
    return lambda: callback


class EventBus:
    """Event bus for decoupled component communication.

    Bound methods are held weakly so listeners disappear with their owner;
    plain functions, lambdas and closures are held until unsubscribed.
    """

    def __init__(self) -> None:
        # Dict[event -> Dict[subscription_id -> callback ref]]
        self._listeners: Dict[AppEvent, Dict[str, Callable[[], Any]]] = {}

    def subscribe(self, event: AppEvent, callback: Callable[[Any], None]) -> Subscription:
        """Subscribe a callback to an event. Returns a Subscription for cleanup."""
        subscription_id = str(uuid.uuid4())
        self._listeners.setdefault(event, {})[subscription_id] = _make_ref(callback)
        strong = None if inspect.ismethod(callback) else callback
        return Subscription(self, event, subscription_id, strong_ref=strong)

    def _unsubscribe_by_id(self, event: AppEvent, subscription_id: str) -> None:
        """Internal: unsubscribe by subscription ID."""
        if event in self._listeners:
            self._listeners[event].pop(subscription_id, None)

    def emit(self, event: AppEvent, data: Any = None) -> None:
        """Emit an event to all subscribers.

        A failing handler is logged and does not stop the others. Dead weak
        references are cleaned up during emission.
        """
        listeners = self._listeners.get(event)
        if not listeners:
            return

        dead_refs = []
        for sub_id, cb_ref in list(listeners.items()):
            callback = cb_ref()
            if callback is None:
                dead_refs.append(sub_id)
                continue
            try:
                callback(data)
            except Exception as e:
                logger.error(f"Error in event handler for {event}: {e}")

        for sub_id in dead_refs:
            listeners.pop(sub_id, None)

    def clear(self) -> None:
        """Clear all event subscriptions. Used primarily for testing."""
        self._listeners.clear()


event_bus = EventBus()
