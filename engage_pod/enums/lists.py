"""List-type and visibility codes understood by the Engage XML API."""

from enum import IntEnum, StrEnum


class ListType(IntEnum):
    """``LIST_TYPE`` values accepted by ``GetLists``."""

    DATABASES = 0
    QUERIES = 1
    DATABASES_AND_QUERIES = 2
    TEST_LISTS = 5
    SEED_LISTS = 6
    SUPPRESSION_LISTS = 13
    RELATIONAL_TABLES = 15
    CONTACT_LISTS = 18


class Visibility(StrEnum):
    """Folder visibility flag sent as ``VISIBILITY`` / ``TABLE_VISIBILITY``."""

    PRIVATE = "0"
    SHARED = "1"

    @classmethod
    def from_private(cls, is_private: bool) -> "Visibility":
        """Map a boolean privacy flag to the wire value."""
        return cls.PRIVATE if is_private else cls.SHARED
