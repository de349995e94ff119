"""
Pytest configuration and fixtures for the test suite.

Defines markers for selective test execution:
    pytest -m unit          # Fast unit tests
    pytest -m resilience    # Polling, retry and cancellation tests
    pytest -m slow          # Tests that take >1s
"""

import datetime
import os
import sys

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import serialization as crypto_serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from azure_management import ClientConfig, ManagementClient  # noqa: E402
from fixtures.management_responses import SAMPLE_SUBSCRIPTION_ID, FakeTransport  # noqa: E402


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "resilience: Polling, retry and cancellation tests")
    config.addinivalue_line("markers", "slow: Tests that take more than 1 second")


@pytest.fixture(scope="session")
def management_pem() -> bytes:
    """Self-signed management certificate and key as one PEM blob."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "azure-management-tests")])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    key_pem = key.private_bytes(
        crypto_serialization.Encoding.PEM,
        crypto_serialization.PrivateFormat.TraditionalOpenSSL,
        crypto_serialization.NoEncryption(),
    )
    return cert.public_bytes(crypto_serialization.Encoding.PEM) + key_pem


@pytest.fixture
def make_client(management_pem):
    """Factory building a client over a FakeTransport with a short poll interval."""

    def _make(transport: FakeTransport, poll_interval: float = 0.02, **overrides) -> ManagementClient:
        config = ClientConfig(
            transport=transport,
            operation_poll_interval=poll_interval,
            **overrides,
        )
        return ManagementClient(SAMPLE_SUBSCRIPTION_ID, management_pem, config)

    return _make
