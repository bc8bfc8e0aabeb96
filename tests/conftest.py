"""Pytest configuration and shared fixtures."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from tmplset.config import TemplateSettings
from tmplset.loaders import FileSystemLoader, MemoryLoader
from tmplset.pool import BufferPool
from tmplset.template_set import TemplateSet

TESTDATA_DIR = Path(__file__).parent / "testdata"


def pytest_addoption(parser):
    parser.addoption(
        "--update-golden",
        action="store_true",
        default=False,
        help="Rewrite golden files with the current render output",
    )


@pytest.fixture
def update_golden(request) -> bool:
    """Whether golden files should be rewritten instead of compared."""
    return request.config.getoption("--update-golden")


@pytest.fixture
def testdata_dir() -> Path:
    """Directory holding template fixtures and golden outputs."""
    return TESTDATA_DIR


@pytest.fixture
def test_settings(tmp_path):
    """TemplateSettings with explicit test values."""
    return TemplateSettings(
        root=str(tmp_path),
        extension=".html",
        recompile=False,
        pool_size=4,
        encoding="utf-8",
        autoescape=True,
        strict_undefined=True,
        cache_sources=True,
        log_level="DEBUG",
    )


@pytest.fixture
def memory_sources() -> dict[str, str]:
    """Mutable in-memory template tree."""
    return {
        "layout": "<title>{% block t %}default{% endblock %}</title>",
        "index": "{% block t %}custom{% endblock %}",
        "basic": "<h1>{{ title }}</h1>",
        "about": "{% block t %}about {{ title }}{% endblock %}",
    }


@pytest.fixture
def spy_loader(memory_sources):
    """MemoryLoader wrapped in a Mock so load() calls can be counted."""
    return Mock(wraps=MemoryLoader(memory_sources))


@pytest.fixture
def template_set(test_settings, spy_loader):
    """TemplateSet over the spy loader with a private pool."""
    return TemplateSet(test_settings, loader=spy_loader, pool=BufferPool(4))


@pytest.fixture
def testdata_set(test_settings, testdata_dir):
    """TemplateSet reading the testdata directory from disk."""
    return TemplateSet(test_settings, loader=FileSystemLoader(testdata_dir, ".html"))
