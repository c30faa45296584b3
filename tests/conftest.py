from pathlib import Path

import pytest

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES


@pytest.fixture
def january_path() -> Path:
    return FIXTURES / "broker_2023_01.html"


@pytest.fixture
def february_path() -> Path:
    return FIXTURES / "broker_2023_02.html"


@pytest.fixture
def iis_path() -> Path:
    return FIXTURES / "iis_2023.html"
