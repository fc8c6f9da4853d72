"""
Joint execution of independent storage reads.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


def fetch_concurrently(
    tasks: dict[str, Callable[[], Any]],
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> dict[str, Any]:
    """
    Run independent fetches on a thread pool and wait for all of them.

    Args:
        tasks: Name to zero-argument callable
        max_workers: Pool size

    Returns:
        Name to result, available only once every task has finished

    Raises:
        The first task exception, in task order, after all tasks complete
    """
    if not tasks:
        return {}

    with ThreadPoolExecutor(max_workers=min(max_workers, len(tasks))) as pool:
        futures = {name: pool.submit(task) for name, task in tasks.items()}

    # Leaving the pool waits for every future, so none is still running here
    results = {}
    for name, future in futures.items():
        error = future.exception()
        if error is not None:
            logger.debug(f"Concurrent fetch '{name}' failed: {error}")
            raise error
        results[name] = future.result()
    return results
