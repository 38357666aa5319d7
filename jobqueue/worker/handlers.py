"""
Job handlers registry and implementations.

A handler is a pydantic model registered under a job type. Its fields are the
job's arguments; they are stored as JSON next to the job type and validated
again when the worker loads the job. Only registered types can be loaded.

Job handlers should be idempotent - a worker killed mid-job leaves the job
locked and it may run again once the lock is reclaimed.
"""

import asyncio
import logging
from typing import Any, Callable, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from jobqueue.errors import BadHandlerError
from jobqueue.types.job import JobOutcome, JobPayload

logger = logging.getLogger(__name__)


class JobHandler(BaseModel):
    """
    Base class for job handlers.

    Subclasses implement perform(). Returning None counts as success.
    """

    model_config = ConfigDict(extra="forbid")

    job_type: ClassVar[str] = ""

    async def perform(self) -> JobOutcome | None:
        raise NotImplementedError


# Handler registry
_handlers: dict[str, type[JobHandler]] = {}


def register_handler(job_type: str) -> Callable[[type[JobHandler]], type[JobHandler]]:
    """
    Decorator to register a job handler class.

    Args:
        job_type: The job type this handler processes.

    Returns:
        Decorator function.

    Example:
        @register_handler("send_email")
        class SendEmail(JobHandler):
            to: str

            async def perform(self) -> JobOutcome | None:
                ...
    """
    def decorator(handler: type[JobHandler]) -> type[JobHandler]:
        handler.job_type = job_type
        _handlers[job_type] = handler
        logger.debug(f"Registered handler for job type: {job_type}")
        return handler
    return decorator


def get_handler(job_type: str) -> type[JobHandler] | None:
    """
    Get the handler class for a job type.

    Args:
        job_type: The job type.

    Returns:
        The handler class or None if not found.
    """
    return _handlers.get(job_type)


def list_handlers() -> list[str]:
    """List all registered job types."""
    return list(_handlers.keys())


def build_handler(job_type: str, data: dict[str, Any] | None = None) -> JobHandler:
    """
    Build a handler instance from its job type and arguments.

    Raises:
        BadHandlerError: If the type is unknown or the arguments are invalid.
    """
    handler_cls = get_handler(job_type)
    if handler_cls is None:
        raise BadHandlerError(f"no handler registered for job type: {job_type}")
    try:
        return handler_cls.model_validate(data or {})
    except ValidationError as e:
        raise BadHandlerError(
            f"invalid arguments for job type {job_type}: {e.error_count()} error(s)"
        ) from e


def serialize_handler(handler: JobHandler) -> str:
    """
    Serialize a handler for storage in the jobs table.

    Raises:
        BadHandlerError: If the handler's class is not the registered one.
    """
    if get_handler(handler.job_type) is not type(handler):
        raise BadHandlerError(
            f"handler {type(handler).__name__} is not registered"
        )
    payload = JobPayload(
        job_type=handler.job_type,
        data=handler.model_dump(mode="json"),
    )
    return payload.model_dump_json()


def deserialize_handler(blob: str | None) -> JobHandler:
    """
    Rebuild a handler from its stored form.

    Raises:
        BadHandlerError: If the blob is missing, malformed, or names an
            unknown job type.
    """
    if not blob:
        raise BadHandlerError("handler is missing")
    try:
        payload = JobPayload.model_validate_json(blob)
    except ValidationError as e:
        raise BadHandlerError("handler is not a valid job payload") from e
    return build_handler(payload.job_type, payload.data)


# ============================================================================
# Built-in job handlers
# ============================================================================


@register_handler("echo")
class EchoHandler(JobHandler):
    """
    Echo handler for testing.

    Logs the message and completes.
    """

    message: str = ""

    async def perform(self) -> JobOutcome | None:
        logger.info("Echo job executing", extra={"echo_message": self.message})
        return JobOutcome.completed()


@register_handler("sleep")
class SleepHandler(JobHandler):
    """
    Sleep handler for testing slow jobs.
    """

    duration_seconds: float = Field(default=1.0, ge=0)

    async def perform(self) -> JobOutcome | None:
        logger.info("Sleep job starting", extra={"duration": self.duration_seconds})
        await asyncio.sleep(self.duration_seconds)
        return None


@register_handler("failing_job")
class FailingHandler(JobHandler):
    """
    Handler that always fails - for testing the failure path.
    """

    reason: str = "Intentional failure"

    async def perform(self) -> JobOutcome | None:
        logger.info("Failing job executing (will fail)")
        return JobOutcome.failed(self.reason)


@register_handler("retry_later")
class RetryLaterHandler(JobHandler):
    """
    Handler that always asks to be retried - for testing the retry path.
    """

    async def perform(self) -> JobOutcome | None:
        logger.info("Retry job executing (will ask for retry)")
        return JobOutcome.retry("retry requested by handler")


@register_handler("http_request")
class HttpRequestHandler(JobHandler):
    """
    Make an HTTP request.

    Non-2xx responses fail the job; connection errors propagate and fail it
    with the error text.
    """

    url: str
    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    timeout_seconds: float = 30.0

    async def perform(self) -> JobOutcome | None:
        import httpx

        method = self.method.upper()

        logger.info("HTTP request job", extra={"method": method, "url": self.url})

        async with httpx.AsyncClient() as client:
            response = await client.request(
                method=method,
                url=self.url,
                headers=self.headers,
                json=self.body if method in ["POST", "PUT", "PATCH"] else None,
                timeout=self.timeout_seconds,
            )

        if not response.is_success:
            return JobOutcome.failed(f"HTTP {response.status_code}")
        return JobOutcome.completed()
