"""
Cloud storage backends used by the library sync.

Both backends expose the same three calls:
    list_files(root)             full recursive listing of files under root
    list_changes(root, cursor)   changes since a previous listing
    temporary_link(path)         short-lived download URL for one file
"""
from dataclasses import dataclass, field
from datetime import timezone
from typing import List, Optional, Tuple

import boto3
import dropbox
import requests
from botocore.exceptions import BotoCoreError, ClientError
from dropbox.exceptions import DropboxException
from dropbox.files import DeletedMetadata, FileMetadata
from flask import current_app


class StorageError(Exception):
    """Raised when the storage provider cannot be reached or refuses a call"""


@dataclass
class RemoteFile:
    path_display: str
    name: str
    size: int
    modified: Optional[object] = None  # naive UTC datetime
    content_hash: Optional[str] = None

    @property
    def path_lower(self):
        return self.path_display.lower()


FILE_ENTRY = 'file'
DELETED_ENTRY = 'deleted'


@dataclass
class StorageChanges:
    """
    A listing or change set in feed order.

    entries are ('file', RemoteFile) or ('deleted', lower-cased path) pairs;
    a deleted path may name a file or a whole folder.
    """
    entries: List[Tuple[str, object]] = field(default_factory=list)
    cursor: Optional[str] = None

    @classmethod
    def from_files(cls, files, cursor=None):
        return cls(entries=[(FILE_ENTRY, f) for f in files], cursor=cursor)

    @property
    def files(self):
        return [item for kind, item in self.entries if kind == FILE_ENTRY]

    @property
    def deleted(self):
        return [item for kind, item in self.entries if kind == DELETED_ENTRY]


def _naive_utc(value):
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class DropboxStorage:
    name = 'dropbox'
    supports_changes = True

    def __init__(self, app_key, app_secret, refresh_token):
        if not app_key or not app_secret or not refresh_token:
            raise StorageError('DROPBOX_APP_KEY / DROPBOX_APP_SECRET / DROPBOX_REFRESH_TOKEN are not configured')
        self.client = dropbox.Dropbox(
            app_key=app_key,
            app_secret=app_secret,
            oauth2_refresh_token=refresh_token,
        )

    def _collect(self, result):
        entries = list(result.entries)
        while result.has_more:
            result = self.client.files_list_folder_continue(result.cursor)
            entries.extend(result.entries)
        return entries, result.cursor

    @staticmethod
    def _to_remote(entry):
        return RemoteFile(
            path_display=entry.path_display,
            name=entry.name,
            size=entry.size,
            modified=_naive_utc(entry.server_modified),
            content_hash=entry.content_hash,
        )

    def _to_changes(self, entries, cursor, include_deleted=True):
        changes = StorageChanges(cursor=cursor)
        for entry in entries:
            if isinstance(entry, FileMetadata):
                changes.entries.append((FILE_ENTRY, self._to_remote(entry)))
            elif include_deleted and isinstance(entry, DeletedMetadata):
                changes.entries.append((DELETED_ENTRY, entry.path_lower))
        return changes

    def list_files(self, root):
        try:
            entries, cursor = self._collect(self.client.files_list_folder(root, recursive=True))
        except (DropboxException, requests.exceptions.RequestException) as e:
            raise StorageError(f'Dropbox listing failed for {root}: {e}') from e
        return self._to_changes(entries, cursor, include_deleted=False)

    def list_changes(self, root, cursor):
        try:
            entries, new_cursor = self._collect(self.client.files_list_folder_continue(cursor))
        except (DropboxException, requests.exceptions.RequestException) as e:
            raise StorageError(f'Dropbox change listing failed: {e}') from e
        return self._to_changes(entries, new_cursor)

    def temporary_link(self, path, expires_in=None):
        # Dropbox links always expire after four hours
        try:
            return self.client.files_get_temporary_link(path).link
        except (DropboxException, requests.exceptions.RequestException) as e:
            raise StorageError(f'Could not create link for {path}: {e}') from e


class S3Storage:
    name = 's3'
    supports_changes = False

    def __init__(self, bucket, region, access_key, secret_key):
        if not bucket:
            raise StorageError('S3_BUCKET is not configured')
        self.bucket = bucket
        self.client = boto3.client(
            's3',
            aws_access_key_id=access_key or None,
            aws_secret_access_key=secret_key or None,
            region_name=region
        )

    @staticmethod
    def _key(path):
        return path.lstrip('/')

    def list_files(self, root):
        prefix = self._key(root).rstrip('/')
        prefix = f'{prefix}/' if prefix else ''
        files = []
        try:
            paginator = self.client.get_paginator('list_objects_v2')
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for obj in page.get('Contents', []):
                    key = obj['Key']
                    if key.endswith('/'):
                        continue  # folder placeholder
                    files.append(RemoteFile(
                        path_display=f'/{key}',
                        name=key.rsplit('/', 1)[-1],
                        size=obj.get('Size', 0),
                        modified=_naive_utc(obj.get('LastModified')),
                        content_hash=obj.get('ETag', '').strip('"') or None,
                    ))
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f'S3 listing failed for {prefix}: {e}') from e
        return StorageChanges.from_files(files)

    def list_changes(self, root, cursor):
        raise StorageError('S3 has no change feed; run a full sync')

    def temporary_link(self, path, expires_in=3600):
        try:
            return self.client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket, 'Key': self._key(path)},
                ExpiresIn=expires_in
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f'Could not create link for {path}: {e}') from e


def get_storage(config=None):
    """Build the storage backend selected by STORAGE_BACKEND"""
    config = config or current_app.config
    backend = config.get('STORAGE_BACKEND', 'dropbox')

    if backend == 'dropbox':
        return DropboxStorage(
            config.get('DROPBOX_APP_KEY'),
            config.get('DROPBOX_APP_SECRET'),
            config.get('DROPBOX_REFRESH_TOKEN')
        )
    if backend == 's3':
        return S3Storage(
            config.get('S3_BUCKET'),
            config.get('S3_REGION'),
            config.get('S3_ACCESS_KEY'),
            config.get('S3_SECRET_KEY')
        )
    raise StorageError(f'Unknown storage backend: {backend}')
