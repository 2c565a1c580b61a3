"""Fixtures shared by the unit tests."""

import pytest

from clearstream.core.restoration.session import RestorationSession
from clearstream.infrastructure.storage.client import InMemoryResourceStore

from .fakes import FakeExtractor, FakeGenerator


@pytest.fixture
def resources() -> InMemoryResourceStore:
    return InMemoryResourceStore()


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def session(extractor, generator, resources) -> RestorationSession:
    return RestorationSession(extractor=extractor, generator=generator, resources=resources)
