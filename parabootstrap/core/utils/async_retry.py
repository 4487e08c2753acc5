import asyncio
import functools
import logging
from typing import (
    Dict,
    List,
    Optional,
    Type,
)


class AllTriesFailedException(EnvironmentError):
    pass


def async_retry(retry_count: int = 2,
                exception_types: List[Type[Exception]] = [Exception],
                logger: logging.Logger = logging.getLogger("retry"),
                stats: Dict[str, int] = None,
                raise_exp: bool = True,
                retry_interval: float = 0.5
                ):
    """
    Only decorate idempotent calls (storage reads, head reads). Extrinsic submission must never be retried here.

    :param retry_count: Number of tries
    :param exception_types: Exception types that trigger a retry
    :param logger:
    :param stats: optional dict collecting `retry.<fn>.count` metrics
    :param raise_exp: raise AllTriesFailedException if all tries failed
    :param retry_interval: interval between tries
    """
    def decorator(fn):
        @functools.wraps(fn)
        async def retry(*args, _stats=stats, **kwargs):
            last_exception: Optional[Exception] = None
            for count in range(1, retry_count + 1):
                try:
                    return await fn(*args, **kwargs)
                except tuple(exception_types) as exc:
                    last_exception = exc
                    logger.info(f"Exception raised for {last_exception}: {fn.__name__}. Retrying {count}/{retry_count} times.")
                    if _stats is not None:
                        metric_name: str = f"retry.{fn.__name__}.count"
                        _stats[metric_name] = _stats.get(metric_name, 0) + 1
                await asyncio.sleep(retry_interval)
            if raise_exp:
                raise AllTriesFailedException() from last_exception
            else:
                logger.info(f"Last exception raised for {repr(last_exception)}: {fn.__name__}. aborting.")
        return retry

    return decorator
