import pytest

from engage_pod.settings.main import EngageSettings


@pytest.fixture
def settings() -> EngageSettings:
    return EngageSettings.from_options(
        {"engage_server": 5, "username": "api@example.com", "password": "secret"}
    )
