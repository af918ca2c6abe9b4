"""Lightweight metrics helpers."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from taskpilot.core.context import get_use_case
from taskpilot.observability.tracing import trace

logger = logging.getLogger(__name__)


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record a metric as a short-lived Opik trace; no-op when tracing is off."""
    payload: Dict[str, Any] = {"value": value}
    use_case = get_use_case()
    if use_case:
        payload["use_case"] = use_case
    if metadata:
        payload.update(metadata)

    logger.debug("metric %s=%s %s", name, value, metadata or {})
    with trace(f"metric:{name}", metadata=payload):
        pass
