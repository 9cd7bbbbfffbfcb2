"""Pluggable telemetry for discovery runs.

The engine only ever talks to :class:`TelemetryAdapter`. :class:`NullTelemetry`
is the default, so nothing here requires an observability backend;
:class:`OpenTelemetryAdapter` imports ``opentelemetry`` only when constructed
(install with ``pip install feedscout[otel]``).
"""
import logging
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


class SpanHandle:
    """What a span context manager yields. The base class records nothing."""

    def set_attribute(self, key: str, value: Any) -> None:
        pass

    def set_status(self, ok: bool, message: Optional[str] = None) -> None:
        pass


class TelemetryAdapter(ABC):
    """Span, breadcrumb and exception reporting used by the registry and services."""

    @abstractmethod
    def span(self, name: str, attributes: Optional[Dict[str, Any]] = None):
        """Context manager wrapping one unit of work; yields a :class:`SpanHandle`."""

    @abstractmethod
    def breadcrumb(self, message: str, data: Optional[Dict[str, Any]] = None, level: str = "info") -> None:
        ...

    @abstractmethod
    def capture_exception(self, exc: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
        ...


class NullTelemetry(TelemetryAdapter):
    @contextmanager
    def span(self, name: str, attributes: Optional[Dict[str, Any]] = None) -> Iterator[SpanHandle]:
        yield SpanHandle()

    def breadcrumb(self, message: str, data: Optional[Dict[str, Any]] = None, level: str = "info") -> None:
        pass

    def capture_exception(self, exc: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
        pass


class _RecordingSpan(SpanHandle):
    def __init__(self):
        self.attributes: Dict[str, Any] = {}
        self.ok: Optional[bool] = None
        self.message: Optional[str] = None

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def set_status(self, ok: bool, message: Optional[str] = None) -> None:
        self.ok = ok
        self.message = message


class LoggingTelemetry(TelemetryAdapter):
    """Route telemetry into the standard logging tree."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    @contextmanager
    def span(self, name: str, attributes: Optional[Dict[str, Any]] = None) -> Iterator[SpanHandle]:
        handle = _RecordingSpan()
        handle.attributes.update(attributes or {})
        t0 = time.monotonic()
        try:
            yield handle
        finally:
            elapsed_ms = (time.monotonic() - t0) * 1000
            status = "ok" if handle.ok is not False else f"error: {handle.message or 'unknown'}"
            self.log.debug(f"[Telemetry] span {name} finished in {elapsed_ms:.0f}ms ({status}) {handle.attributes}")

    def breadcrumb(self, message: str, data: Optional[Dict[str, Any]] = None, level: str = "info") -> None:
        self.log.debug(f"[Telemetry] {level}: {message} {data or {}}")

    def capture_exception(self, exc: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
        self.log.warning(f"[Telemetry] captured {type(exc).__name__}: {exc} {context or {}}",
                         exc_info=(type(exc), exc, exc.__traceback__))


class _OtelSpan(SpanHandle):
    def __init__(self, span, status_cls, status_code_cls):
        self._span = span
        self._status_cls = status_cls
        self._status_code = status_code_cls

    def set_attribute(self, key: str, value: Any) -> None:
        self._span.set_attribute(key, _otel_value(value))

    def set_status(self, ok: bool, message: Optional[str] = None) -> None:
        code = self._status_code.OK if ok else self._status_code.ERROR
        self._span.set_status(self._status_cls(code, None if ok else message))


def _otel_value(value: Any) -> Any:
    if isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return str(value)


class OpenTelemetryAdapter(TelemetryAdapter):
    """Spans through an OpenTelemetry tracer; breadcrumbs become span events."""

    def __init__(self, tracer=None):
        from opentelemetry import trace

        self._trace = trace
        self.tracer = tracer or trace.get_tracer("feedscout")

    @contextmanager
    def span(self, name: str, attributes: Optional[Dict[str, Any]] = None) -> Iterator[SpanHandle]:
        from opentelemetry.trace import Status, StatusCode

        attrs = {k: _otel_value(v) for k, v in (attributes or {}).items()}
        with self.tracer.start_as_current_span(name, attributes=attrs) as span:
            yield _OtelSpan(span, Status, StatusCode)

    def breadcrumb(self, message: str, data: Optional[Dict[str, Any]] = None, level: str = "info") -> None:
        span = self._trace.get_current_span()
        attrs = {k: _otel_value(v) for k, v in (data or {}).items()}
        attrs["level"] = level
        span.add_event(message, attributes=attrs)

    def capture_exception(self, exc: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
        span = self._trace.get_current_span()
        attrs = {k: _otel_value(v) for k, v in (context or {}).items()}
        span.record_exception(exc, attributes=attrs)
