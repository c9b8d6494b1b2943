"""Shared fixtures for sparkc unit tests."""

import pytest

from engine_stub import ScriptedEngine
from sparkc.config import CompilerConfig
from sparkc.driver import CompilerDriver
from sparkc.sdk import DartSdk


@pytest.fixture
def sdk():
    return DartSdk(
        {
            "core/core.dart": "library dart.core;\nclass Object {}\n",
            "async/async.dart": "library dart.async;\n",
            "html/dartium/html_dartium.dart": "library dart.html;\n",
        },
        version="1.0.0",
    )


@pytest.fixture
def engine():
    return ScriptedEngine()


@pytest.fixture
def config(tmp_path):
    return CompilerConfig(work_dir=tmp_path / "work", fetch_timeout=5.0)


@pytest.fixture
def driver(sdk, engine, config):
    compiler_driver = CompilerDriver.create(sdk, engine=engine, config=config)
    yield compiler_driver
    compiler_driver.close()
