from __future__ import annotations

import os

import pytest


@pytest.fixture
def database_url() -> str:
    if os.getenv("RUN_POSTGRES_INTEGRATION_TESTS") != "1":
        pytest.skip(
            "Set RUN_POSTGRES_INTEGRATION_TESTS=1 and RESEARCH_PIPELINE_DATABASE_URL "
            "to run integration tests against PostgreSQL."
        )
    database_url = os.getenv("RESEARCH_PIPELINE_DATABASE_URL")
    if not database_url:
        pytest.skip("RESEARCH_PIPELINE_DATABASE_URL is required for integration tests.")
    return database_url
