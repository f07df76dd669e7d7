import pytest

import mocks


@pytest.fixture
def person_validator():
    return mocks.person_builder().build()


@pytest.fixture
def full_person_validator():
    return mocks.full_person_builder().build()


@pytest.fixture
def node_validator():
    return mocks.node_builder().build()


@pytest.fixture
def graphic_validator():
    return mocks.graphic_builder().build()
