"""Kinds of entries accepted by explicit delete requests."""

from enum import Enum


class DeleteKind(str, Enum):
    """What a delete request targets.

    Only changes the wording of log messages; files and directories are
    deleted the same way.
    """

    FILE = "file"
    DIRECTORY = "directory"

    @property
    def label(self) -> str:
        """Word used in log messages."""
        return "image" if self is DeleteKind.DIRECTORY else "file"

    @classmethod
    def from_string(cls, value: str) -> "DeleteKind":
        """Parse a kind name, accepting ``dir`` and ``image`` as aliases.

        Raises:
            ValueError: If the value names no kind
        """
        aliases = {"dir": cls.DIRECTORY, "image": cls.DIRECTORY}
        value = value.strip().lower()
        if value in aliases:
            return aliases[value]
        return cls(value)
