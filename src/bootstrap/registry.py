from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List

from src.bootstrap.exceptions import UnknownComponentError

_ComponentFactory = Callable[..., Any]


class _Registry:
    """Identifier → factory map, resolved once at startup into concrete instances."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._items: Dict[str, _ComponentFactory] = {}

    def register(self, key: str, factory: _ComponentFactory) -> None:
        if key in self._items:
            raise ValueError(f"Factory already registered for {self.kind}: {key}")
        self._items[key] = factory

    def keys(self) -> List[str]:
        return list(self._items)

    def resolve(self, key: str, /, **kwargs: Any) -> Any:
        try:
            factory = self._items[key]
        except KeyError as e:
            raise UnknownComponentError(f"No {self.kind} registered for key: {key}") from e
        return factory(**kwargs)

    def resolve_all(self, keys: Iterable[str], /, **kwargs: Any) -> List[Any]:
        """Resolve in the given order; duplicates are kept as configured."""
        return [self.resolve(key, **kwargs) for key in keys]


providers = _Registry("context provider")
sinks = _Registry("context sink")
channels = _Registry("exception channel")

__all__ = ["channels", "providers", "sinks"]
