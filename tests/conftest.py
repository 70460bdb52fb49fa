import pytest

from fixtures import FakeGateway


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
