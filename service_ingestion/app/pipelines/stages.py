"""Tagged results for pipeline stages.

Each stage produces either ``Success`` carrying its output or ``Failure``
carrying the stage-tagged error. Stages can be run and inspected one at a
time, e.g. feeding a fixed pixel buffer straight into preprocessing.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

import structlog

from .errors import STAGE_ERRORS

logger = structlog.get_logger("ingestion.stages")

T = TypeVar("T")

FETCH = "fetch"
DECODE = "decode"
PREPROCESS = "preprocess"
EXTRACT = "extract"
UPSERT = "upsert"


@dataclass(frozen=True)
class Success(Generic[T]):
    stage: str
    value: T
    duration: float = 0.0

    ok = True


@dataclass(frozen=True)
class Failure:
    stage: str
    error: Exception
    duration: float = 0.0

    ok = False


StageResult = Union[Success[Any], Failure]


async def run_stage(stage: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> StageResult:
    """Run one stage and tag its outcome.

    Coroutine functions are awaited; plain callables run in a worker thread
    so CPU-bound work (decode, resize, inference) leaves the event loop free
    for other requests. Only domain stage errors become a ``Failure``;
    anything else is a bug and propagates.
    """
    start = time.perf_counter()
    try:
        if inspect.iscoroutinefunction(func):
            value = await func(*args, **kwargs)
        else:
            value = await asyncio.to_thread(func, *args, **kwargs)
    except STAGE_ERRORS as e:
        duration = time.perf_counter() - start
        logger.debug("Stage failed", stage=stage, error_type=type(e).__name__, error=str(e))
        return Failure(stage=stage, error=e, duration=duration)

    duration = time.perf_counter() - start
    logger.debug("Stage completed", stage=stage, duration_ms=duration * 1000)
    return Success(stage=stage, value=value, duration=duration)
