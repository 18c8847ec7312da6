"""Persistence of the tab → Quizlet set id mapping in Google Drive.

The mapping for a spreadsheet lives in a single JSON file inside the Drive
``appDataFolder`` of the authorised user, named after the spreadsheet id.
Reads and writes always locate the file by name first so nothing about the
file itself needs to be remembered between runs.

Writes replace the whole file. Two runs against the same spreadsheet at the
same time race and the last ``save`` wins.
"""
from __future__ import annotations

import json
import logging
from typing import Dict, Mapping, Optional, Union

import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from quizsync import drive_api

logger = logging.getLogger(__name__)

RemoteId = Union[str, int]
SetMapping = Dict[str, Optional[RemoteId]]

_TRANSPORT_ERRORS = (OSError, httplib2.HttpLib2Error, GoogleAuthError)


class StorageError(Exception):
    """Raised when the mapping cannot be loaded from or saved to Drive."""


def decode_mapping(content: bytes) -> SetMapping:
    """Decode and validate the JSON content of a metadata file."""

    try:
        text = content.decode("utf-8-sig").strip()
    except UnicodeDecodeError as exc:
        raise StorageError(f"Metadata file is not UTF-8 encoded: {exc}") from exc
    if not text:
        return {}
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise StorageError(f"Metadata file is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise StorageError("Metadata file must contain a JSON object")

    mapping: SetMapping = {}
    for key, value in payload.items():
        if value is not None and (isinstance(value, bool) or not isinstance(value, (str, int))):
            raise StorageError(f"Metadata entry {key!r} has invalid set id {value!r}")
        mapping[str(key)] = value
    return mapping


class MetadataStore:
    """Load and save the set id mapping addressed by a collection id."""

    def __init__(self, service) -> None:
        self._service = service

    def load(self, collection_id: str) -> SetMapping:
        """Return the stored mapping, creating an empty metadata file if needed."""

        logger.info("Looking up metadata for %s", collection_id)
        try:
            file_id = drive_api.find_app_data_file(self._service, collection_id)
            if file_id is None:
                logger.info("Creating metadata file for %s", collection_id)
                drive_api.create_json_file(self._service, collection_id, {})
                logger.info("Created metadata file")
                return {}
            content = drive_api.download_file(self._service, file_id)
        except HttpError as exc:
            raise StorageError(f"Unable to load metadata for {collection_id}: {exc}") from exc
        except _TRANSPORT_ERRORS as exc:
            raise StorageError(f"Drive is unreachable: {exc}") from exc

        mapping = decode_mapping(content)
        logger.info("Retrieved metadata with %s entries", len(mapping))
        return mapping

    def save(self, collection_id: str, mapping: Mapping[str, Optional[RemoteId]]) -> None:
        """Overwrite the metadata file for ``collection_id`` with ``mapping``."""

        payload = dict(mapping)
        logger.info("Saving metadata for %s", collection_id)
        try:
            file_id = drive_api.find_app_data_file(self._service, collection_id)
            if file_id is None:
                logger.warning("Metadata file for %s disappeared; recreating it", collection_id)
                drive_api.create_json_file(self._service, collection_id, payload)
            else:
                drive_api.update_json_file(self._service, file_id, payload)
        except HttpError as exc:
            raise StorageError(f"Unable to save metadata for {collection_id}: {exc}") from exc
        except _TRANSPORT_ERRORS as exc:
            raise StorageError(f"Drive is unreachable: {exc}") from exc
        logger.info("Metadata saved (%s entries)", len(payload))


__all__ = ["MetadataStore", "RemoteId", "SetMapping", "StorageError", "decode_mapping"]
