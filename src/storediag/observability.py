from __future__ import annotations

import contextlib
import json
import logging
import time
from typing import Any, Iterator

from storediag.runtime.settings import Settings


def _now_ms() -> int:
    return int(time.time() * 1000)


def _dur_ms(t0: float, t1: float) -> int:
    return int((t1 - t0) * 1000)


def ensure_logging(settings: Settings) -> None:
    fmt = '%(asctime)s - (%(threadName)-10s) - %(name)s - %(levelname)s - %(message)s'
    if (settings.log_format or "text").lower() == "json":
        # JSON payload already includes timestamp; keep formatter minimal.
        fmt = "%(message)s"
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.WARNING),
        format=fmt,
    )


def log_event(logger: logging.Logger, *, settings: Settings, level: int, event: str, **fields: Any) -> None:
    """Emit an event log.

    - text format: one-liner `event key=value ...`
    - json format: one JSON object per line
    """
    if settings.log_format.lower() == "json":
        payload = {"ts_ms": _now_ms(), "event": event, **fields}
        logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
        return

    # text
    parts = [event]
    for k, v in fields.items():
        parts.append(f"{k}={v}")
    logger.log(level, " ".join(parts))


@contextlib.contextmanager
def duration(logger: logging.Logger, stage: str, *, settings: Settings) -> Iterator[None]:
    """Log the wall-clock duration of a stage, whether or not it raised."""
    t0 = time.perf_counter()
    log_event(logger, settings=settings, level=logging.DEBUG, event="stage_start", stage=stage)
    try:
        yield
    finally:
        log_event(
            logger,
            settings=settings,
            level=logging.INFO,
            event="stage_end",
            stage=stage,
            duration_ms=_dur_ms(t0, time.perf_counter()),
        )
