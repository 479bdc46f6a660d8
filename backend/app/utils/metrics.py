"""
Counters and timers for booking and payment flows, with an optional
StatsD/Datadog UDP sink. Sends are fire-and-forget; a missing or broken sink
never affects the request.

  from app.utils.metrics import incr, Timer
  incr("booking.created", tags={"type": "session"})
  with Timer("webhook.process.ms", tags={"type": event_type}):
      ...

Env:
  METRICS_STATSD_ADDR = "host:port" (e.g., "127.0.0.1:8125"); unset disables
  METRICS_TAGS = "0" drops the Datadog-style tag suffix (|#key:val,...)
"""

from __future__ import annotations

import logging
import os
import socket
import time
from typing import Dict, Optional

logger = logging.getLogger(__name__)

_ADDR = os.getenv("METRICS_STATSD_ADDR", "").strip()
_USE_TAGS = os.getenv("METRICS_TAGS", "1") not in ("0", "false", "False")
_SOCK: Optional[socket.socket] = None


def _get_sock() -> Optional[socket.socket]:
    global _SOCK
    if not _ADDR:
        return None
    if _SOCK is None:
        try:
            host, port = _ADDR.split(":", 1)
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            sock.connect((host, int(port)))
            _SOCK = sock
        except (OSError, ValueError) as exc:
            logger.warning("StatsD sink %s unusable: %s", _ADDR, exc)
            return None
    return _SOCK


def _format_tags(tags: Optional[Dict[str, object]]) -> str:
    if not tags or not _USE_TAGS:
        return ""
    parts = [f"{str(k).replace(',', '_')}:{str(v).replace(',', '_')}" for k, v in tags.items()]
    return "|#" + ",".join(parts)


def _send(line: str) -> None:
    sock = _get_sock()
    if sock is None:
        return
    try:
        sock.send(line.encode("utf-8"))
    except OSError:
        pass


def incr(name: str, value: int = 1, tags: Optional[Dict[str, object]] = None) -> None:
    _send(f"{name}:{int(value)}|c{_format_tags(tags)}")


def timing_ms(name: str, ms: float, tags: Optional[Dict[str, object]] = None) -> None:
    _send(f"{name}:{float(ms):.2f}|ms{_format_tags(tags)}")


class Timer:
    def __init__(self, name: str, tags: Optional[Dict[str, object]] = None):
        self.name = name
        self.tags = tags or {}
        self._t0 = 0.0

    def __enter__(self):
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        timing_ms(self.name, (time.perf_counter() - self._t0) * 1000.0, tags=self.tags)
        return False
