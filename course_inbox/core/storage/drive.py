"""
Google Drive backend for course storage.

This module handles:
- Finding or creating one folder per course under a root folder
- Reading and writing JSON documents in those folders
- Keeping a single copy of each document (duplicates are trashed)
"""
import asyncio
import io
import json
import logging
import os
from typing import Any, Dict, List, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload, MediaIoBaseUpload

from .base import StorageBackend, StorageError

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = 'application/vnd.google-apps.folder'


def _escape_query_value(value: str) -> str:
    """Escape backslashes and single quotes for a Drive query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class GoogleDriveBackend(StorageBackend):
    """Course storage in Google Drive via a service account."""

    def __init__(self, service_account_path: str, root_folder_id: str, drive_service=None):
        """
        Initialize Google Drive backend.

        Args:
            service_account_path: Path to service account JSON key file
            root_folder_id: Drive folder holding one sub-folder per course
            drive_service: Pre-built Drive v3 service (skips credential loading)
        """
        self.root_folder_id = root_folder_id
        self._folder_ids: Dict[str, str] = {}

        if drive_service is not None:
            self.drive_service = drive_service
            return

        if not os.path.exists(service_account_path):
            raise FileNotFoundError(f"Service account file not found: {service_account_path}")

        credentials = service_account.Credentials.from_service_account_file(
            service_account_path,
            scopes=['https://www.googleapis.com/auth/drive']
        )
        self.drive_service = build('drive', 'v3', credentials=credentials)
        logger.info(f"Google Drive backend initialized (root folder ID: {root_folder_id})")

    # ------------------------------------------------------------------
    # Folder helpers (blocking, run in a worker thread)
    # ------------------------------------------------------------------

    def _find_folder_by_name(self, folder_name: str, parent_folder_id: str) -> Optional[str]:
        query = (
            f"name='{_escape_query_value(folder_name)}' and '{parent_folder_id}' in parents "
            f"and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
        )
        results = self.drive_service.files().list(
            q=query,
            fields='files(id, name)',
            supportsAllDrives=True,
            includeItemsFromAllDrives=True
        ).execute()
        folders = results.get('files', [])
        return folders[0]['id'] if folders else None

    def _create_folder(self, folder_name: str, parent_folder_id: str) -> str:
        folder = self.drive_service.files().create(
            body={
                'name': folder_name,
                'mimeType': FOLDER_MIME_TYPE,
                'parents': [parent_folder_id]
            },
            fields='id',
            supportsAllDrives=True
        ).execute()
        folder_id = folder.get('id')
        logger.debug(f"Created folder '{folder_name}' (ID: {folder_id})")
        return folder_id

    def _get_or_create_course_folder(self, course_id: str) -> str:
        if course_id in self._folder_ids:
            return self._folder_ids[course_id]
        folder_id = self._find_folder_by_name(course_id, self.root_folder_id)
        if not folder_id:
            folder_id = self._create_folder(course_id, self.root_folder_id)
        self._folder_ids[course_id] = folder_id
        return folder_id

    def _find_files_by_name(self, file_name: str, folder_id: str) -> List[Dict[str, str]]:
        query = f"name='{_escape_query_value(file_name)}' and '{folder_id}' in parents and trashed=false"
        results = self.drive_service.files().list(
            q=query,
            fields='files(id, name, modifiedTime)',
            orderBy='modifiedTime desc',
            supportsAllDrives=True,
            includeItemsFromAllDrives=True
        ).execute()
        return results.get('files', [])

    def _trash_file(self, file_id: str) -> bool:
        try:
            self.drive_service.files().update(
                fileId=file_id,
                body={'trashed': True},
                supportsAllDrives=True
            ).execute()
            return True
        except HttpError as e:
            logger.warning(f"Failed to trash file (ID: {file_id}): {e}")
            return False

    # ------------------------------------------------------------------
    # Blocking implementations
    # ------------------------------------------------------------------

    def _read(self, course_id: str, filename: str) -> Optional[Dict[str, Any]]:
        try:
            folder_id = self._get_or_create_course_folder(course_id)
            files = self._find_files_by_name(filename, folder_id)
            if not files:
                return None

            request = self.drive_service.files().get_media(fileId=files[0]['id'])
            buffer = io.BytesIO()
            downloader = MediaIoBaseDownload(buffer, request)
            done = False
            while not done:
                _, done = downloader.next_chunk()
            return json.loads(buffer.getvalue().decode('utf-8'))
        except (HttpError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read '{filename}' for course {course_id}: {e}") from e

    def _write(self, course_id: str, filename: str, payload: Dict[str, Any]) -> None:
        try:
            folder_id = self._get_or_create_course_folder(course_id)
            existing_files = self._find_files_by_name(filename, folder_id)
            data = json.dumps(payload, indent=2, default=str).encode('utf-8')
            media = MediaIoBaseUpload(io.BytesIO(data), mimetype='application/json', resumable=False)

            if existing_files:
                # Most recent first; keep it and trash the rest
                self.drive_service.files().update(
                    fileId=existing_files[0]['id'],
                    media_body=media,
                    fields='id',
                    supportsAllDrives=True
                ).execute()
                for duplicate in existing_files[1:]:
                    self._trash_file(duplicate['id'])
            else:
                self.drive_service.files().create(
                    body={'name': filename, 'parents': [folder_id]},
                    media_body=media,
                    fields='id',
                    supportsAllDrives=True
                ).execute()
            logger.debug(f"Saved '{filename}' for course {course_id}")
        except HttpError as e:
            raise StorageError(f"Failed to write '{filename}' for course {course_id}: {e}") from e

    def _list(self) -> List[str]:
        try:
            query = f"'{self.root_folder_id}' in parents and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
            results = self.drive_service.files().list(
                q=query,
                fields='files(id, name)',
                supportsAllDrives=True,
                includeItemsFromAllDrives=True
            ).execute()
        except HttpError as e:
            raise StorageError(f"Failed to list course folders: {e}") from e
        folders = results.get('files', [])
        for folder in folders:
            self._folder_ids.setdefault(folder['name'], folder['id'])
        return [folder['name'] for folder in folders]

    # ------------------------------------------------------------------
    # StorageBackend
    # ------------------------------------------------------------------

    async def read_json(self, course_id: str, filename: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._read, course_id, filename)

    async def write_json(self, course_id: str, filename: str, payload: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, course_id, filename, payload)

    async def list_courses(self) -> List[str]:
        return await asyncio.to_thread(self._list)
