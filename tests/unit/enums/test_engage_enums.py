import logging
from enum import IntEnum, StrEnum

import pytest

from engage_pod.enums import ListType, LogLevel, Visibility


# ---------------------------------------------------------------------------
# ListType
# ---------------------------------------------------------------------------

def test_list_type_is_int_enum() -> None:
    assert issubclass(ListType, IntEnum)


def test_list_type_values() -> None:
    assert ListType.DATABASES == 0
    assert ListType.QUERIES == 1
    assert ListType.DATABASES_AND_QUERIES == 2
    assert ListType.TEST_LISTS == 5
    assert ListType.SEED_LISTS == 6
    assert ListType.SUPPRESSION_LISTS == 13
    assert ListType.RELATIONAL_TABLES == 15
    assert ListType.CONTACT_LISTS == 18


def test_list_type_member_count() -> None:
    assert len(ListType) == 8


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------

def test_visibility_is_str_enum() -> None:
    assert issubclass(Visibility, StrEnum)


def test_visibility_from_private() -> None:
    assert Visibility.from_private(True) == "0"
    assert Visibility.from_private(False) == "1"


# ---------------------------------------------------------------------------
# LogLevel
# ---------------------------------------------------------------------------

def test_log_level_matches_logging() -> None:
    assert LogLevel.DEBUG == logging.DEBUG
    assert LogLevel.INFO == logging.INFO
    assert LogLevel.WARNING == logging.WARNING
    assert LogLevel.ERROR == logging.ERROR
    assert LogLevel.CRITICAL == logging.CRITICAL


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("debug", LogLevel.DEBUG),
        (" Critical ", LogLevel.CRITICAL),
        ("30", LogLevel.WARNING),
        (20, LogLevel.INFO),
        (LogLevel.ERROR, LogLevel.ERROR),
    ],
)
def test_log_level_parse(raw: object, expected: LogLevel) -> None:
    assert LogLevel.parse(raw) is expected


@pytest.mark.parametrize("raw", ["loud", "15", 99])
def test_log_level_parse_rejects_unknown(raw: object) -> None:
    with pytest.raises(ValueError):
        LogLevel.parse(raw)
