from pathlib import Path

import pytest

from openapi_assertions.validator.compiler import build_registry

pytest_plugins = ["pytester"]

FIXTURES = Path(__file__).parent / "fixtures"
PETSTORE = FIXTURES / "petstore-3.1.json"


@pytest.fixture(scope="session")
def petstore_path() -> Path:
    return PETSTORE


@pytest.fixture(scope="session")
def registry():
    return build_registry([PETSTORE])
