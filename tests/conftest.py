"""
Pytest configuration and shared fixtures.

WHAT: Marker registration and environment isolation
WHY: Provider tests must not pick up real credentials from the environment
HOW: Autouse fixture blanking credential settings
"""

import pytest

from llm_nodes.core.config import settings


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (isolated component tests)"
    )
    config.addinivalue_line(
        "markers", "providers: Vendor adapter tests against mocked HTTP"
    )
    config.addinivalue_line(
        "markers", "nodes: Node, pipeline and template tests"
    )
    config.addinivalue_line(
        "markers", "batch: Batch submission, status mapping and result merging"
    )


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """
    Blank every credential setting for the duration of a test.

    WHAT: Remove credentials that may come from the developer's environment
    WHY: "missing key" tests must fail the same way everywhere
    HOW: monkeypatch the shared settings instance
    """
    for name in (
        "OPENAI_API_KEY",
        "OPENAI_ORGANIZATION",
        "ANTHROPIC_API_KEY",
        "GOOGLE_API_KEY",
        "XAI_API_KEY",
        "AWS_REGION",
    ):
        monkeypatch.setattr(settings, name, None)
    yield settings
