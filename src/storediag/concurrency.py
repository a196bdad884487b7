from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Iterable, List, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def run_thread_pool(
    items: Iterable[T],
    fn: Callable[[T], R],
    *,
    workers: int = 4,
    task_timeout: Optional[float] = None,
    on_timeout: Optional[Callable[[T], R]] = None,
) -> List[R]:
    """Run fn over items on a bounded pool; results keep the order of items.

    ``task_timeout`` bounds one task. Tasks queue behind busy workers, so the
    wait covers ``ceil(len(items) / workers)`` rounds of it; tasks still
    pending after that are abandoned and replaced by ``on_timeout(item)``. A
    task that raises fails the whole call.
    """
    items = list(items)
    if not items:
        return []

    results: List[Optional[R]] = [None] * len(items)
    errors = []

    workers = max(1, min(int(workers), len(items)))
    timeout = None if task_timeout is None else task_timeout * math.ceil(len(items) / workers)

    ex = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="probe")
    try:
        fut_map = {ex.submit(fn, item): idx for idx, item in enumerate(items)}
        done, pending = wait(fut_map, timeout=timeout)
        for fut in done:
            idx = fut_map[fut]
            try:
                results[idx] = fut.result()
            except Exception as e:
                errors.append((idx, e))
        for fut in pending:
            idx = fut_map[fut]
            fut.cancel()
            if on_timeout is None:
                errors.append((idx, TimeoutError(f"task {idx} did not complete in {timeout}s")))
            else:
                results[idx] = on_timeout(items[idx])
    finally:
        # never wait for abandoned tasks
        ex.shutdown(wait=False, cancel_futures=True)

    if errors:
        idx, e = sorted(errors, key=lambda x: x[0])[0]
        raise RuntimeError(f"ThreadPool task failed at index={idx}: {e}") from e

    return list(results)  # type: ignore
