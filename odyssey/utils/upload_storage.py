"""Durable file storage for uploads under MEDIA_ROOT.

Stored names are ``<epoch millis>_<sanitised original name>`` and are served
back at ``/<folder>/<name>`` (registration files live in ``uploads``).

Registration files go through an UploadBatch: each file is first written to
``MEDIA_ROOT/.pending/<folder>/`` and only moved into place with commit()
once the registration record has been written. rollback() deletes everything
the batch staged, so a rejected or failed registration leaves no files.
"""

from dataclasses import dataclass
import logging
import os
import time

from flask import current_app
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

REGISTRATION_FOLDER = 'uploads'
PENDING_DIR = '.pending'


class StorageError(Exception):
    """Writing, moving or deleting a stored file failed."""


def sanitize_filename(filename):
    name = secure_filename(filename or '')
    return name or 'upload'


@dataclass
class StagedFile:
    field_name: str
    pending_path: str
    final_path: str
    public_path: str


class UploadStore:
    def __init__(self, root):
        self.root = os.path.abspath(root)

    def folder_path(self, folder):
        return os.path.join(self.root, folder)

    def _unique_name(self, folder, filename):
        base = sanitize_filename(filename)
        stamp = int(time.time() * 1000)
        while True:
            name = f"{stamp}_{base}"
            taken = (
                os.path.exists(os.path.join(self.folder_path(folder), name))
                or os.path.exists(os.path.join(self.root, PENDING_DIR, folder, name))
            )
            if not taken:
                return name
            stamp += 1

    def _write(self, upload, path):
        os.makedirs(os.path.dirname(path), exist_ok=True)
        stream = getattr(upload, 'stream', None)
        if stream is not None and hasattr(stream, 'seek'):
            stream.seek(0)
        upload.save(path)

    def save(self, upload, folder):
        """Store ``upload`` directly and return its public path."""
        name = self._unique_name(folder, upload.filename)
        path = os.path.join(self.folder_path(folder), name)
        try:
            self._write(upload, path)
        except OSError as e:
            raise StorageError(f"Failed to store {upload.filename}: {e}") from e
        logger.info("Stored upload %s", path)
        return f"/{folder}/{name}"

    def stage(self, field_name, upload, folder=REGISTRATION_FOLDER):
        name = self._unique_name(folder, upload.filename)
        pending = os.path.join(self.root, PENDING_DIR, folder, name)
        try:
            self._write(upload, pending)
        except OSError as e:
            raise StorageError(f"Failed to store file for {field_name}: {e}") from e
        return StagedFile(
            field_name=field_name,
            pending_path=pending,
            final_path=os.path.join(self.folder_path(folder), name),
            public_path=f"/{folder}/{name}",
        )

    def promote(self, staged):
        try:
            os.makedirs(os.path.dirname(staged.final_path), exist_ok=True)
            os.replace(staged.pending_path, staged.final_path)
        except OSError as e:
            raise StorageError(f"Failed to finalize file for {staged.field_name}: {e}") from e

    def discard(self, staged):
        for path in (staged.pending_path, staged.final_path):
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.error("Could not remove orphaned upload %s: %s", path, e)

    def batch(self):
        return UploadBatch(self)


class UploadBatch:
    """Files staged for one registration request."""

    def __init__(self, store):
        self.store = store
        self.staged = []

    def stage(self, field_name, upload):
        staged = self.store.stage(field_name, upload)
        self.staged.append(staged)
        return staged.public_path

    def commit(self):
        for staged in self.staged:
            self.store.promote(staged)

    def rollback(self):
        for staged in self.staged:
            self.store.discard(staged)
        if self.staged:
            logger.warning("Discarded %d staged upload(s)", len(self.staged))
        self.staged = []


def get_upload_store():
    return UploadStore(current_app.config['MEDIA_ROOT'])
