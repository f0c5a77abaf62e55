import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from synacor_vm.config import LOG_NAME, TRACE_LOG_NAME


@pytest.fixture(autouse=True)
def _detach_log_handlers():
    """CLI tests attach handlers bound to the captured stderr; drop them."""
    yield
    for name in (LOG_NAME, TRACE_LOG_NAME):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
