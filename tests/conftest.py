"""
Shared fixtures for securetoken tests.
"""

import pytest

from securetoken import Validator, load_config
from securetoken.testing import MOCK_PROJECT, MockKeysetEndpoint, MockSigningKey, mock_claims


@pytest.fixture(scope="session")
def signing_key():
    """Signing key whose certificate is published by the mock endpoint."""
    return MockSigningKey.generate()


@pytest.fixture(scope="session")
def rogue_key():
    """Signing key that the mock endpoint never publishes."""
    return MockSigningKey.generate()


@pytest.fixture
def endpoint(signing_key):
    """Mock keyset endpoint serving ``signing_key``."""
    return MockKeysetEndpoint.serving(signing_key)


@pytest.fixture
def config():
    """Validator configuration for the mock project."""
    return load_config(audience=MOCK_PROJECT, url="https://keys.test/securetoken")


@pytest.fixture
def validator(config, endpoint):
    """Validator backed by the mock endpoint."""
    client = endpoint.client()
    subject = Validator(config, http_client=client)
    yield subject
    subject.close()
    client.close()


@pytest.fixture
def claims():
    """Valid claims payload for the mock project."""
    return mock_claims()
