from __future__ import annotations

import threading
from typing import Any, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

from src.bootstrap.context.providers import ContextProvider
from src.bootstrap.context.scope import RequestScope, current_scope
from src.bootstrap.context.sinks import ContextSink
from src.bootstrap.logging import get_logger

logger = get_logger(__name__)


class ContextAggregator:
    """
    Runs the configured providers in order and merges their subtrees into the
    aggregate owned by the current RequestScope.

    Output of cacheable providers is computed once per process (per cache key)
    and then shared read-only; everything else is recomputed on every build.
    """

    def __init__(
        self,
        providers: Sequence[ContextProvider],
        sinks: Iterable[ContextSink] = (),
        *,
        enabled: bool = True,
    ) -> None:
        self._providers: List[ContextProvider] = list(providers)
        self._sinks: List[ContextSink] = list(sinks)
        self._enabled = enabled
        self._cache: Dict[Tuple[int, Hashable], Dict[str, Any]] = {}
        self._cache_lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def providers(self) -> List[ContextProvider]:
        return list(self._providers)

    def build(self, scope: Optional[RequestScope] = None) -> Dict[str, Any]:
        scope = scope or current_scope()
        scope.context.reset()
        if not self._enabled:
            return {}

        for index, provider in enumerate(self._providers):
            subtree = self._collect(index, provider, scope)
            if subtree:
                scope.context.merge(subtree)

        self._publish(scope)
        return scope.context.all()

    def get(self, key: str, default: Any = None, scope: Optional[RequestScope] = None) -> Any:
        return (scope or current_scope()).context.get(key, default)

    def set(self, key: str, value: Any, scope: Optional[RequestScope] = None) -> None:
        scope = scope or current_scope()
        scope.context.set(key, value)
        self._publish(scope)

    def all(self, scope: Optional[RequestScope] = None) -> Dict[str, Any]:
        return (scope or current_scope()).context.all()

    def reset(self, scope: Optional[RequestScope] = None) -> None:
        (scope or current_scope()).context.reset()

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    # ------------------------------------------------------------------

    def _collect(self, index: int, provider: ContextProvider, scope: RequestScope) -> Dict[str, Any]:
        name = type(provider).__name__
        try:
            if not provider.should_run(scope):
                return {}
            if not provider.is_cacheable():
                return dict(provider.get_context(scope) or {})

            key = (index, provider.cache_key(scope))
            cached = self._cache.get(key)
            if cached is None:
                with self._cache_lock:
                    cached = self._cache.get(key)
                    if cached is None:
                        cached = dict(provider.get_context(scope) or {})
                        self._cache[key] = cached
            return cached
        except Exception as exc:
            logger.warning("context_provider_failed", provider=name, error=str(exc), exc_info=True)
            return {}

    def _publish(self, scope: RequestScope) -> None:
        for sink in self._sinks:
            try:
                sink.register(scope.context)
            except Exception as exc:
                logger.warning("context_sink_failed", sink=type(sink).__name__, error=str(exc))
