"""Handler registry for rule kinds applied to a loaded document."""

from __future__ import annotations

from typing import Dict, Iterable

from ...exceptions import UnsupportedOperationError
from .interfaces import BaseHandler, HandlerFactory, TransformContext


class HandlerRegistry:
    """Registry storing the handler class of each rule kind."""

    def __init__(self) -> None:
        self._handlers: Dict[str, type[BaseHandler]] = {}

    def register(self, name: str, handler_class: type[BaseHandler]) -> None:
        if name in self._handlers:
            raise ValueError(f"Handler '{name}' is already registered")
        self._handlers[name] = handler_class

    def create(self, name: str, context: TransformContext) -> BaseHandler:
        try:
            handler_class = self._handlers[name]
        except KeyError as exc:
            raise UnsupportedOperationError(f"Unsupported transformation type: {name}") from exc
        return handler_class(context)

    def names(self) -> Iterable[str]:
        return sorted(self._handlers.keys())

    def get(self, name: str) -> type[BaseHandler] | None:
        return self._handlers.get(name)


registry = HandlerRegistry()


def register_handler(name: str):
    def decorator(cls: type[BaseHandler]) -> type[BaseHandler]:
        cls.name = name
        registry.register(name, cls)
        return cls

    return decorator


__all__ = [
    "HandlerRegistry",
    "registry",
    "register_handler",
    "TransformContext",
    "BaseHandler",
    "HandlerFactory",
]
