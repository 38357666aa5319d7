"""
Unit tests for job handlers and their serialization.
"""

import json

import pytest

from jobqueue.constants import OutcomeStatus
from jobqueue.errors import BadHandlerError
from jobqueue.worker.handlers import (
    EchoHandler,
    FailingHandler,
    JobHandler,
    RetryLaterHandler,
    build_handler,
    deserialize_handler,
    get_handler,
    list_handlers,
    serialize_handler,
)


class TestHandlerRegistry:
    """Tests for the handler registry."""

    def test_list_handlers(self):
        """Test listing registered handlers."""
        handlers = list_handlers()

        assert "echo" in handlers
        assert "sleep" in handlers
        assert "failing_job" in handlers
        assert "retry_later" in handlers
        assert "http_request" in handlers

    def test_get_handler_exists(self):
        """Test getting an existing handler."""
        assert get_handler("echo") is EchoHandler
        assert EchoHandler.job_type == "echo"

    def test_get_handler_not_exists(self):
        """Test getting a non-existent handler."""
        assert get_handler("nonexistent") is None

    def test_build_handler_unknown_type(self):
        """Test building an unregistered job type."""
        with pytest.raises(BadHandlerError, match="no handler registered"):
            build_handler("nonexistent", {})

    def test_build_handler_rejects_unknown_fields(self):
        """Test handler arguments are validated."""
        with pytest.raises(BadHandlerError, match="invalid arguments"):
            build_handler("echo", {"message": "hi", "unexpected": 1})


class TestHandlerSerialization:
    """Tests for storing and loading handlers."""

    def test_serialize_handler_format(self):
        """Test the stored form names the job type and its data."""
        blob = serialize_handler(EchoHandler(message="hello"))

        assert json.loads(blob) == {"job_type": "echo", "data": {"message": "hello"}}

    def test_deserialize_handler(self):
        """Test a stored handler loads back as its registered class."""
        handler = deserialize_handler('{"job_type": "echo", "data": {"message": "hi"}}')

        assert isinstance(handler, EchoHandler)
        assert handler.message == "hi"

    @pytest.mark.parametrize(
        "blob",
        [
            None,
            "",
            "not json",
            '{"data": {}}',
            '{"job_type": "nonexistent", "data": {}}',
            '{"job_type": "sleep", "data": {"duration_seconds": -1}}',
        ],
    )
    def test_deserialize_bad_handler(self, blob):
        """Test every malformed blob is reported as a bad handler."""
        with pytest.raises(BadHandlerError):
            deserialize_handler(blob)

    def test_serialize_unregistered_handler(self):
        """Test handlers outside the registry cannot be enqueued."""

        class Unregistered(JobHandler):
            async def perform(self):
                return None

        with pytest.raises(BadHandlerError, match="not registered"):
            serialize_handler(Unregistered())


class TestBuiltinHandlers:
    """Tests for the built-in handlers."""

    async def test_echo_handler(self):
        """Test the echo handler completes."""
        outcome = await EchoHandler(message="test").perform()

        assert outcome.status == OutcomeStatus.COMPLETED

    async def test_failing_handler(self):
        """Test the failing job handler."""
        outcome = await FailingHandler().perform()

        assert outcome.status == OutcomeStatus.FAILED
        assert "Intentional failure" in outcome.error

    async def test_retry_later_handler(self):
        """Test the retry handler asks for a retry."""
        outcome = await RetryLaterHandler().perform()

        assert outcome.status == OutcomeStatus.RETRY

    async def test_sleep_handler(self):
        """Test the sleep handler returns None, which counts as success."""
        handler = build_handler("sleep", {"duration_seconds": 0})

        assert await handler.perform() is None
