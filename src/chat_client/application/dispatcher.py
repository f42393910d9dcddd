"""In-process publish/subscribe registry."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from chat_client.application.exceptions import HandlerError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Handler = Callable[[T], Any]


class Dispatcher(Generic[T]):
    """Fans a message out to every registered handler, in registration order.

    Handlers are called synchronously. Each call runs over a snapshot of the
    registry, so handlers added or removed while a dispatch is running only
    take part in later dispatches. A handler that raises is logged and does
    not stop the remaining handlers.
    """

    def __init__(self, name: str = "dispatcher") -> None:
        self._name = name
        self._handlers: list[Handler[T]] = []

    def __len__(self) -> int:
        return len(self._handlers)

    def __contains__(self, handler: object) -> bool:
        return handler in self._handlers

    def subscribe(self, handler: Handler[T]) -> None:
        self._handlers.append(handler)

    def unsubscribe(self, handler: Handler[T]) -> None:
        try:
            self._handlers.remove(handler)
        except ValueError:
            pass

    def clear(self) -> None:
        self._handlers.clear()

    def dispatch(self, message: T) -> list[HandlerError]:
        errors: list[HandlerError] = []
        for handler in tuple(self._handlers):
            try:
                handler(message)
            except Exception as exc:
                logger.exception("Handler %r failed on %s", handler, self._name)
                errors.append(HandlerError(handler, exc))
        return errors


@dataclass(frozen=True, slots=True)
class Topic(Generic[T]):
    name: str
    payload_type: type[T]


class EventBus:
    """Named, typed topics, each backed by its own Dispatcher."""

    def __init__(self) -> None:
        self._dispatchers: dict[str, Dispatcher[Any]] = {}

    def dispatcher(self, topic: Topic[T]) -> Dispatcher[T]:
        dispatcher = self._dispatchers.get(topic.name)
        if dispatcher is None:
            dispatcher = Dispatcher(topic.name)
            self._dispatchers[topic.name] = dispatcher
        return dispatcher

    def subscribe(self, topic: Topic[T], handler: Handler[T]) -> None:
        self.dispatcher(topic).subscribe(handler)

    def unsubscribe(self, topic: Topic[T], handler: Handler[T]) -> None:
        dispatcher = self._dispatchers.get(topic.name)
        if dispatcher is not None:
            dispatcher.unsubscribe(handler)

    def publish(self, topic: Topic[T], event: T) -> list[HandlerError]:
        if not isinstance(event, topic.payload_type):
            raise TypeError(
                f"{topic.name} expects {topic.payload_type.__name__}, "
                f"got {type(event).__name__}"
            )
        dispatcher = self._dispatchers.get(topic.name)
        if dispatcher is None:
            return []
        return dispatcher.dispatch(event)

    def clear(self) -> None:
        for dispatcher in self._dispatchers.values():
            dispatcher.clear()
