"""Data models for Drive file metadata and resolved parent folders."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Drive API JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_PARENTS = "parents"
FIELD_WEB_VIEW_LINK = "webViewLink"
FIELD_USER = "user"

# Serialised result keys
KEY_FILE = "file"
KEY_FOLDERS = "folders"
KEY_URL = "url"


@dataclass(frozen=True)
class FileSummary:
    """Public metadata of a Drive file."""

    id: str
    name: str
    url: str

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> FileSummary:
        """Build from a Drive API record (``webViewLink`` becomes ``url``)."""
        return cls(
            id=str(record.get(FIELD_ID, "")),
            name=str(record.get(FIELD_NAME, "")),
            url=str(record.get(FIELD_WEB_VIEW_LINK, "")),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileSummary:
        return cls(id=data[FIELD_ID], name=data[FIELD_NAME], url=data[KEY_URL])

    def to_dict(self) -> dict[str, str]:
        return {FIELD_ID: self.id, FIELD_NAME: self.name, KEY_URL: self.url}


@dataclass(frozen=True)
class FolderSummary(FileSummary):
    """Public metadata of a parent folder."""


@dataclass(frozen=True)
class ResolutionResult:
    """A file together with its immediate parent folders.

    Attributes:
        file: Metadata of the resolved file.
        folders: Parent folders in the order the file record lists them.
    """

    file: FileSummary
    folders: tuple[FolderSummary, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResolutionResult:
        """Rebuild a result from its serialised form.

        Raises:
            KeyError: If a required key is missing.
            TypeError: If the data is not shaped like a serialised result.
        """
        return cls(
            file=FileSummary.from_dict(data[KEY_FILE]),
            folders=tuple(FolderSummary.from_dict(f) for f in data[KEY_FOLDERS]),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the JSON shape used by the cache and by responses."""
        return {
            KEY_FILE: self.file.to_dict(),
            KEY_FOLDERS: [folder.to_dict() for folder in self.folders],
        }
