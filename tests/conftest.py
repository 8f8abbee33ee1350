"""Shared fixtures for the texcompat tests"""

import pytest

from texcompat.single_image import default_hooks


@pytest.fixture
def hooks():
    return default_hooks()
