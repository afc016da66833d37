import pytest
from src.common.logger import configure_logging


@pytest.fixture(autouse=True)
def default_log_level():
    configure_logging("INFO")
    yield
    configure_logging("INFO")
