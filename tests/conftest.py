"""Fixtures and configuration for pytest."""

import pytest
from loguru import logger

from wgslbind.transpiler.context import ProcessingContext


@pytest.fixture
def context() -> ProcessingContext:
    """Fixture providing a fresh engine-mode processing context."""
    return ProcessingContext()


@pytest.fixture
def pure_context() -> ProcessingContext:
    """Fixture providing a fresh pure-mode processing context."""
    return ProcessingContext(pure_mode=True)


@pytest.fixture
def warnings():
    """Fixture collecting the messages logged at warning level or above."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda message: messages.append(message.record["message"]),
        level="WARNING",
    )
    yield messages
    logger.remove(handler_id)
