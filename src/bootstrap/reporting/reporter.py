from __future__ import annotations

from typing import Iterable, List, Optional

from src.bootstrap.context.scope import RequestScope, maybe_scope
from src.bootstrap.logging import get_logger
from src.bootstrap.reporting.channels import ExceptionChannel

logger = get_logger(__name__)


class ExceptionReporter:
    """
    Fans a reported exception out to every configured channel, in order.

    A failing channel is logged and skipped; reporting never raises.
    """

    def __init__(self, channels: Iterable[ExceptionChannel]) -> None:
        self._channels: List[ExceptionChannel] = list(channels)

    @property
    def channels(self) -> List[ExceptionChannel]:
        return list(self._channels)

    async def report(self, exception: BaseException, scope: Optional[RequestScope] = None) -> None:
        scope = scope or maybe_scope()
        for channel in self._channels:
            try:
                await channel.send(exception, scope)
            except Exception as e:
                logger.error(
                    "exception_channel_failed",
                    channel=type(channel).__name__,
                    error=str(e),
                )
