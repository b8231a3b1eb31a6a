"""
Dependency container for testdb.

Hands out one instance per class. Instances and factories can be registered
up front; any other class is built by resolving its constructor parameters
from their type annotations.
"""

import inspect
import logging
import typing
from typing import Any, Callable, Dict, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ContainerError(Exception):
    """Raised when the container cannot build an instance."""
    pass


class Container:
    """Minimal type-keyed dependency container."""

    def __init__(self):
        self._instances: Dict[type, Any] = {}
        self._factories: Dict[type, Callable[["Container"], Any]] = {}

    def set(self, cls: Type[T], instance: T) -> None:
        """Register a ready-made instance for ``cls``."""
        self._instances[cls] = instance

    def register(self, cls: Type[T], factory: Callable[["Container"], T]) -> None:
        """Register a factory called with the container on first ``get``."""
        self._factories[cls] = factory
        self._instances.pop(cls, None)

    def get(self, cls: Type[T]) -> T:
        """Return the instance for ``cls``, building it on first use."""
        if cls in self._instances:
            return self._instances[cls]

        if cls in self._factories:
            instance = self._factories[cls](self)
        else:
            instance = self._build(cls)

        self._instances[cls] = instance
        logger.debug(f"Container built {cls.__name__}")
        return instance

    def _build(self, cls: Type[T]) -> T:
        try:
            hints = typing.get_type_hints(cls.__init__)
        except (NameError, TypeError) as e:
            raise ContainerError(f"Cannot inspect constructor of {cls.__name__}: {e}") from e

        kwargs = {}
        for name, parameter in inspect.signature(cls.__init__).parameters.items():
            if name == "self" or parameter.kind in (parameter.VAR_POSITIONAL, parameter.VAR_KEYWORD):
                continue
            if parameter.default is not parameter.empty:
                continue
            dependency = hints.get(name)
            if not isinstance(dependency, type):
                raise ContainerError(
                    f"Cannot resolve parameter '{name}' of {cls.__name__}: no class annotation"
                )
            kwargs[name] = self.get(dependency)

        return cls(**kwargs)

