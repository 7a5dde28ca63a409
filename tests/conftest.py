import pytest

from helpers import FIXED_NOW


@pytest.fixture
def fixed_now():
    return lambda: FIXED_NOW
