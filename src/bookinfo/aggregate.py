from __future__ import annotations

import enum
import logging
from typing import AsyncIterable, Callable, Iterable, Optional

from .normalize import normalize_binding
from .records import RawBinding, Record, ResultSet

logger = logging.getLogger(__name__)


class AggregationState(str, enum.Enum):
    PENDING = "pending"
    COLLECTING = "collecting"
    DONE = "done"
    FAILED = "failed"


class Aggregator:
    """Fold a binding sequence into an ordered list of records.

    All-or-nothing: the first error from the source or from normalization
    moves the aggregator to FAILED, drops whatever was buffered and re-raises.
    Cancellation counts as a failure too. An instance runs once.
    """

    def __init__(self, normalize: Callable[[RawBinding], Record] = normalize_binding) -> None:
        self._normalize = normalize
        self._buffer: ResultSet = []
        self.state = AggregationState.PENDING
        self.error: Optional[BaseException] = None

    def _start(self) -> None:
        if self.state is not AggregationState.PENDING:
            raise RuntimeError(f"aggregator already ran (state={self.state.value})")
        self.state = AggregationState.COLLECTING

    def _accept(self, binding: RawBinding) -> None:
        self._buffer.append(self._normalize(binding))

    def _finish(self) -> ResultSet:
        self.state = AggregationState.DONE
        records, self._buffer = self._buffer, []
        logger.debug("aggregation done: %d records", len(records))
        return records

    def _fail(self, exc: BaseException) -> None:
        self.state = AggregationState.FAILED
        self.error = exc
        dropped = len(self._buffer)
        self._buffer = []
        logger.warning("aggregation failed after %d records: %r", dropped, exc)

    def collect(self, bindings: Iterable[RawBinding]) -> ResultSet:
        self._start()
        try:
            for binding in bindings:
                self._accept(binding)
        except BaseException as e:
            self._fail(e)
            raise
        return self._finish()

    async def collect_async(self, bindings: AsyncIterable[RawBinding]) -> ResultSet:
        self._start()
        try:
            async for binding in bindings:
                self._accept(binding)
        except BaseException as e:
            self._fail(e)
            raise
        return self._finish()


def collect_records(bindings: Iterable[RawBinding]) -> ResultSet:
    return Aggregator().collect(bindings)
