from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _drop_log_sinks() -> Iterator[None]:
    """CLI runs bind a sink to the captured stderr of the running test."""
    yield
    logger.remove()
