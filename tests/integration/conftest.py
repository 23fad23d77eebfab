"""Pytest configuration and fixtures for integration tests."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from dotenv import load_dotenv

from pyomnilogic.const import DEFAULT_API_URL, DEFAULT_AUTH_URL


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


# Load .env file from project root
env_path = Path(__file__).parents[2] / ".env"
load_dotenv(env_path)


@pytest.fixture(scope="session")
def integration_config() -> dict[str, str]:
    """Load integration test configuration from environment.

    Returns:
        Dictionary with account credentials and endpoint URLs.

    Raises:
        ValueError: If required environment variables are missing.
    """
    email = os.getenv("OMNILOGIC_EMAIL")
    password = os.getenv("OMNILOGIC_PASSWORD")

    if not email or not password:
        msg = (
            "Missing required environment variables. "
            "Please create .env file with OMNILOGIC_EMAIL and OMNILOGIC_PASSWORD"
        )
        raise ValueError(msg)

    return {
        "email": email,
        "password": password,
        "api_url": os.getenv("OMNILOGIC_API_URL", DEFAULT_API_URL),
        "auth_url": os.getenv("OMNILOGIC_AUTH_URL", DEFAULT_AUTH_URL),
    }


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for integration tests."""
    config.addinivalue_line("markers", "integration: Integration tests requiring real API access")
    config.addinivalue_line("markers", "slow: Slow tests that may take several seconds")


@pytest.fixture(autouse=True)
async def rate_limit_delay(request: pytest.FixtureRequest) -> AsyncGenerator[None]:
    """Add a delay after each integration test so the cloud API is not hammered."""
    yield
    if "integration" in request.keywords:
        await asyncio.sleep(2.0)
