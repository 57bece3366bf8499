import pytest

from fakes import FakeProviders


@pytest.fixture
def providers():
    return FakeProviders()
