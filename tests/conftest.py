"""Test configuration and shared fixtures."""

import pytest

from yara_session.config import Environment, Settings, reset_config, set_config
from yara_session.infrastructure.native import reset_library, set_library

from tests.fakes import FakeNativeLibrary

HELLO_RULE = """
rule hello : greeting demo {
    meta:
        author = "tests"
        severity = 3
        score = 0.75
        enabled = true
    strings:
        $a = "hello"
    condition:
        $a
}
"""

RETRIES_RULE = """
rule retries_exhausted {
    condition:
        RETRIES == 3
}
"""


@pytest.fixture(autouse=True)
def isolated_settings():
    """Every test starts from default settings and no loaded library."""
    set_config(Settings(environment=Environment.TEST, json_logs=False))
    yield
    reset_config()
    reset_library()


@pytest.fixture
def fake_library() -> FakeNativeLibrary:
    """Fake native library, installed as the process-wide library."""
    library = FakeNativeLibrary()
    set_library(library)
    return library


@pytest.fixture
def hello_rule() -> str:
    """Rule with tags, four metadata types and one text pattern."""
    return HELLO_RULE


@pytest.fixture
def retries_rule() -> str:
    """Rule that depends on the integer global RETRIES."""
    return RETRIES_RULE
