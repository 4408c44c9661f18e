"""
Structured logging facade.

Every log call carries a dotted event name (``<domain>.<action>.<result>``),
an optional ``extra`` payload and the correlation context set through
``log_context``. Records are emitted through loguru so that the sinks
configured in ``miniapp.core.logger`` apply.
"""
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from contextvars import ContextVar
from functools import wraps

from loguru import logger as loguru_logger
from miniapp.config import settings

# Context variables for correlation tracking
correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)
session_id_var: ContextVar[Optional[str]] = ContextVar('session_id', default=None)
build_id_var: ContextVar[Optional[str]] = ContextVar('build_id', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)


class StructuredLogger:
    """
    Structured logger with correlation tracking.

    Usage:
        logger = get_logger(__name__)
        logger.info("runtime.spec.loaded", extra={"pages": 2})
    """

    def __init__(self, name: str):
        self.name = name
        self.service_name = settings.app_name
        self.environment = settings.environment

    def _correlation(self) -> Dict[str, Any]:
        return {
            "correlation_id": correlation_id_var.get(),
            "session_id": session_id_var.get(),
            "build_id": build_id_var.get(),
            "user_id": user_id_var.get(),
        }

    def _emit(
        self,
        level: str,
        event: str,
        message: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        bound = loguru_logger.bind(
            logger_name=self.name,
            event=event,
            service=self.service_name,
            environment=self.environment,
            correlation=self._correlation(),
            data=extra or {},
        )
        if exc_info is not None:
            bound = bound.opt(exception=exc_info)
        text = message or event
        if extra:
            text = f"{text} {extra}"
        # Braces inside payloads must not be treated as format fields
        bound.log(level, "{}", text)

    def debug(self, event: str, message: str = None, extra: Dict = None, **kwargs):
        self._emit("DEBUG", event, message, extra)

    def info(self, event: str, message: str = None, extra: Dict = None, **kwargs):
        self._emit("INFO", event, message, extra)

    def warning(self, event: str, message: str = None, extra: Dict = None, **kwargs):
        self._emit("WARNING", event, message, extra)

    def error(
        self,
        event: str,
        message: str = None,
        extra: Dict = None,
        exc_info: BaseException = None,
        **kwargs
    ):
        self._emit("ERROR", event, message, extra, exc_info)

    def critical(
        self,
        event: str,
        message: str = None,
        extra: Dict = None,
        exc_info: BaseException = None,
        **kwargs
    ):
        self._emit("CRITICAL", event, message, extra, exc_info)

    def performance(self, event: str, duration_ms: float, extra: Dict = None):
        """Log a timing measurement"""
        perf_data = {"duration_ms": round(duration_ms, 2)}
        if extra:
            perf_data.update(extra)
        self._emit("INFO", event, f"Performance: {duration_ms:.1f}ms", perf_data)


def get_logger(name: str) -> StructuredLogger:
    """
    Get structured logger for module.

    Usage:
        logger = get_logger(__name__)
        logger.info("build.started", extra={"prompt_length": 42})
    """
    return StructuredLogger(name)


class log_context:
    """
    Context manager for correlation tracking.

    Usage:
        with log_context(correlation_id="abc", session_id="s-1"):
            logger.info("session.dispatch.started")
    """

    def __init__(
        self,
        correlation_id: str = None,
        session_id: str = None,
        build_id: str = None,
        user_id: str = None,
        **kwargs
    ):
        self._values = {
            correlation_id_var: correlation_id,
            session_id_var: session_id,
            build_id_var: build_id,
            user_id_var: user_id,
        }
        self.extra_context = kwargs
        self._tokens = []

    def __enter__(self):
        for var, value in self._values.items():
            if value:
                self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()


def trace_async(event_prefix: str):
    """
    Decorator for tracing async functions.

    Usage:
        @trace_async("llm.generate")
        async def generate_spec(description: str):
            ...
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            logger = get_logger(func.__module__)
            start_time = datetime.now(timezone.utc)

            logger.debug(f"{event_prefix}.started", extra={"function": func.__name__})

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
                logger.error(
                    f"{event_prefix}.failed",
                    extra={
                        "function": func.__name__,
                        "duration_ms": duration_ms,
                        "error_type": type(e).__name__
                    },
                    exc_info=e
                )
                raise

            duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
            logger.performance(
                f"{event_prefix}.completed",
                duration_ms=duration_ms,
                extra={"function": func.__name__, "success": True}
            )
            return result

        return wrapper
    return decorator
