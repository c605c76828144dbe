"""
Shared test config
"""
# Standard
from unittest import mock

# Third Party
import pytest

# Local
from topoctl.test_helpers.helpers import configure_logging, library_config

configure_logging()


@pytest.fixture(autouse=True)
def no_local_kubeconfig():
    """This fixture makes sure the tests run as if KUBECONFIG is not exported in
    the environment, even if it is
    """
    with mock.patch(
        "kubernetes.config.new_client_from_config", side_effect=RuntimeError
    ):
        yield


@pytest.fixture
def fast_backoff():
    """Shrink the queue backoff so retry tests run quickly"""
    with library_config(
        rate_limiter={
            "base_delay": "0.01s",
            "max_delay": "1s",
            "qps": 0,
            "burst": 100,
        }
    ):
        yield
