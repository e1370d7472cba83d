"""Pytest configuration and fixtures for integration tests."""

from fixtures.mock_servers import (
    mock_exit_list_server,
    mock_reputation_server,
)

from fixtures.sample_data import (
    sample_exit_list,
    sample_secondary_exit_list,
    sample_ip_api_responses,
    sample_rdap_networks,
)

__all__ = [
    # Mock server fixtures
    "mock_exit_list_server",
    "mock_reputation_server",
    # Sample data fixtures
    "sample_exit_list",
    "sample_secondary_exit_list",
    "sample_ip_api_responses",
    "sample_rdap_networks",
]
