from __future__ import annotations

"""
Module lifecycle events.

Subscribers are called synchronously on the publishing thread, in priority
order. A failing subscriber is logged and skipped; it never breaks the
lifecycle operation that published the event.
"""

import json
import logging
import os
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


REDACT_KEYS = {
    "passphrase",
    "password",
    "secret",
    "token",
    "api_key",
    "key",
    "authorization",
}


def _redact(obj: Any) -> Any:
    if isinstance(obj, dict):
        out: Dict[str, Any] = {}
        for k, v in obj.items():
            if str(k).lower() in REDACT_KEYS:
                out[k] = "***REDACTED***"
            else:
                out[k] = _redact(v)
        return out
    if isinstance(obj, list):
        return [_redact(x) for x in obj]
    return obj


def redact(obj: Any) -> Any:
    return _redact(obj)


class ModuleEvent(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    event_type: str
    module_name: str = ""
    timestamp: float = Field(default_factory=lambda: time.time())
    trace_id: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("event_type")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = str(v or "").strip()
        if not v:
            raise ValueError("event_type required")
        return v

    @field_validator("payload")
    @classmethod
    def _jsonable_and_redacted(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(v, dict):
            raise ValueError("payload must be an object")
        safe = redact(v)
        try:
            json.dumps(safe, ensure_ascii=False)
        except Exception as e:  # noqa: BLE001
            raise ValueError("payload must be JSON-serializable") from e
        return safe


EventHandler = Callable[[ModuleEvent], None]


@dataclass
class _Sub:
    event_type: str
    handler: EventHandler
    priority: int


class EventHub:
    """
    In-process synchronous publish/subscribe.

    event_type supports:
    - exact match ("module.enabled")
    - prefix match ("module.*")
    - wildcard all ("*")
    """

    def __init__(self, *, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("modhub.events")
        self._lock = threading.Lock()
        self._subs: List[_Sub] = []
        self._published = 0
        self._handler_errors = 0

    def subscribe(self, event_type: str, handler: EventHandler, priority: int = 50) -> None:
        if not callable(handler):
            raise ValueError("handler must be callable")
        with self._lock:
            self._subs.append(_Sub(event_type=str(event_type), handler=handler, priority=int(priority)))
            self._subs.sort(key=lambda s: int(s.priority))

    def unsubscribe(self, handler: EventHandler) -> int:
        with self._lock:
            keep = [s for s in self._subs if s.handler is not handler]
            removed = len(self._subs) - len(keep)
            self._subs = keep
        return removed

    @staticmethod
    def _matches(pattern: str, event_type: str) -> bool:
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            return event_type.startswith(pattern[:-1])
        return pattern == event_type

    def publish(self, ev: ModuleEvent) -> int:
        """Deliver to every matching subscriber. Returns the number of successful deliveries."""
        with self._lock:
            subs = [s for s in self._subs if self._matches(s.event_type, ev.event_type)]
            self._published += 1
        delivered = 0
        for s in subs:
            try:
                s.handler(ev)
                delivered += 1
            except Exception as e:  # noqa: BLE001
                with self._lock:
                    self._handler_errors += 1
                self.logger.warning("Event handler failed for %s: %s", ev.event_type, e)
        return delivered

    def emit(self, event_type: str, module_name: str = "", *, trace_id: Optional[str] = None, **payload: Any) -> ModuleEvent:
        ev = ModuleEvent(event_type=event_type, module_name=module_name, trace_id=trace_id, payload=payload)
        self.publish(ev)
        return ev

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"subscribers": len(self._subs), "published": self._published, "handler_errors": self._handler_errors}


class JsonlEventSink:
    """
    Appends every event it receives to a JSONL file (redacted payload only).
    """

    def __init__(self, *, path: str = os.path.join("logs", "events", "module_events.jsonl")):
        self.path = path
        self._lock = threading.Lock()
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)

    def __call__(self, ev: ModuleEvent) -> None:
        line = json.dumps(ev.model_dump(), ensure_ascii=False)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
