"""Integration tests for pyomnilogic library.

These tests use real API credentials from .env file and make actual API calls.
They are marked with @pytest.mark.integration and skipped by default.

To run integration tests:
    pytest tests/integration -v -m integration

Environment variables required in .env:
    OMNILOGIC_EMAIL: Account email
    OMNILOGIC_PASSWORD: Account password
    OMNILOGIC_API_URL: MobileInterface URL (optional, defaults to production)
    OMNILOGIC_AUTH_URL: Auth service URL (optional, defaults to production)
"""
