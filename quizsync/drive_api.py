"""Google Drive API helpers for the QuizSync metadata file."""
from __future__ import annotations

import io
import json
from typing import Dict, List, Mapping, Optional

from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseUpload

APP_DATA_SPACE = "appDataFolder"
JSON_MIME_TYPE = "application/json"


def build_drive_service(credentials):
    """Return a Drive v3 client for ``credentials``."""

    return build("drive", "v3", credentials=credentials, cache_discovery=False)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _json_media(data: Mapping[str, object]) -> MediaIoBaseUpload:
    return MediaIoBaseUpload(
        io.BytesIO(json.dumps(data, ensure_ascii=False).encode("utf-8")),
        mimetype=JSON_MIME_TYPE,
        resumable=False,
    )


def find_app_data_files(service, name: str) -> List[Dict]:
    """Return the appData files called ``name``, oldest first."""

    response = (
        service.files()
        .list(
            spaces=APP_DATA_SPACE,
            q=f"name = '{_escape(name)}' and trashed = false",
            fields="files(id, name, createdTime)",
            pageSize=100,
        )
        .execute()
    )
    files = response.get("files", [])
    files.sort(key=lambda item: item.get("createdTime", ""))
    return files


def find_app_data_file(service, name: str) -> Optional[str]:
    """Return the id of the appData file called ``name`` or ``None``."""

    files = find_app_data_files(service, name)
    if files:
        return files[0]["id"]
    return None


def create_json_file(service, name: str, data: Mapping[str, object]) -> str:
    """Create a JSON file in the appData folder and return its id."""

    metadata = {"name": name, "parents": [APP_DATA_SPACE]}
    created = (
        service.files()
        .create(body=metadata, media_body=_json_media(data), fields="id")
        .execute()
    )
    return created["id"]


def update_json_file(service, file_id: str, data: Mapping[str, object]) -> None:
    """Overwrite the whole content of ``file_id`` with ``data``."""

    service.files().update(fileId=file_id, media_body=_json_media(data)).execute()


def download_file(service, file_id: str) -> bytes:
    """Download a file's content as bytes."""

    content = service.files().get_media(fileId=file_id).execute()
    if isinstance(content, str):
        return content.encode("utf-8")
    return content


__all__ = [
    "APP_DATA_SPACE",
    "build_drive_service",
    "create_json_file",
    "download_file",
    "find_app_data_file",
    "find_app_data_files",
    "update_json_file",
]
