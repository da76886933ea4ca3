"""
Storage to database synchronization.

Each direct sub-folder of the storage root is a textbook. Files below it are
mirrored into the files table: new files are added, changed ones updated,
and files that disappeared are deactivated (never deleted), so their click
history survives a later re-upload.
"""
import logging
import threading
from datetime import datetime
from englib import db_session
from englib.core.models import Setting, SyncLog
from englib.core.storage import DELETED_ENTRY
from englib.core.tree_utils import split_path
from englib.modules.library.models import File, Textbook

logger = logging.getLogger(__name__)

CURSOR_SETTING_KEY = 'storage_sync_cursor'

_sync_lock = threading.Lock()


class SyncInProgressError(Exception):
    """Raised when a sync is requested while another one is running"""


class SyncPlan:
    def __init__(self):
        self.to_add = []
        self.to_update = []  # (existing file, remote file)
        self.to_deactivate = []

    def __repr__(self):
        return (f'SyncPlan(add={len(self.to_add)}, update={len(self.to_update)}, '
                f'deactivate={len(self.to_deactivate)})')


def is_sync_running():
    return _sync_lock.locked()


def textbook_root_for(path, storage_root):
    """
    Locate the textbook folder a file belongs to.

    Returns (textbook name, textbook root path) or None when the file is not
    inside a textbook folder (outside the storage root, or directly in it).
    """
    segments = split_path(path)
    root = split_path(storage_root)
    if len(segments) < len(root) + 2:
        return None
    for part, root_part in zip(segments, root):
        if part.lower() != root_part.lower():
            return None

    folder_segments = segments[:len(root) + 1]
    return folder_segments[-1], '/' + '/'.join(folder_segments) + '/'


def is_syncable(remote, storage_root, allowed_extensions):
    if allowed_extensions and not remote.name.lower().endswith(tuple(allowed_extensions)):
        return False
    return textbook_root_for(remote.path_display, storage_root) is not None


def needs_update(existing, remote):
    """True if the stored row differs from the remote file or was deactivated"""
    if not existing.is_active:
        return True
    if existing.file_size != remote.size:
        return True
    if existing.content_hash and remote.content_hash:
        return existing.content_hash != remote.content_hash
    return existing.last_modified != remote.modified


def plan_full_sync(existing, remote_files):
    """
    Reconcile stored files with a complete remote listing.

    existing maps lower-cased paths to stored file rows; remote_files is the
    already filtered listing. Active rows missing remotely are deactivated.
    """
    plan = SyncPlan()
    seen = set()
    for remote in remote_files:
        key = remote.path_lower
        if key in seen:
            continue
        seen.add(key)

        current = existing.get(key)
        if current is None:
            plan.to_add.append(remote)
        elif needs_update(current, remote):
            plan.to_update.append((current, remote))

    for key, current in existing.items():
        if key not in seen and current.is_active:
            plan.to_deactivate.append(current)
    return plan


class LibrarySync:
    """Applies storage listings to the database for one storage root"""

    def __init__(self, storage, storage_root, allowed_extensions):
        self.storage = storage
        self.storage_root = storage_root
        self.allowed_extensions = allowed_extensions
        self._textbooks = None

    def _textbook_for(self, remote):
        if self._textbooks is None:
            self._textbooks = {t.dropbox_path.lower(): t for t in Textbook.query.all()}

        name, root_path = textbook_root_for(remote.path_display, self.storage_root)
        textbook = self._textbooks.get(root_path.lower())
        if textbook is None:
            textbook = Textbook(name=name, dropbox_path=root_path)
            db_session.add(textbook)
            db_session.flush()
            self._textbooks[root_path.lower()] = textbook
            logger.info(f"New textbook discovered: {name} ({root_path})")
        return textbook

    def _syncable(self, files):
        return [f for f in files if is_syncable(f, self.storage_root, self.allowed_extensions)]

    def _add(self, remote):
        textbook = self._textbook_for(remote)
        db_session.add(File(
            textbook_id=textbook.id,
            name=remote.name,
            dropbox_path=remote.path_display,
            path_lower=remote.path_lower,
            file_size=remote.size,
            last_modified=remote.modified,
            content_hash=remote.content_hash,
            is_active=True
        ))

    def _update(self, existing, remote):
        existing.name = remote.name
        existing.dropbox_path = remote.path_display
        existing.file_size = remote.size
        existing.last_modified = remote.modified
        existing.content_hash = remote.content_hash
        existing.is_active = True

    def apply_full(self, listing):
        """Returns (added, updated, deactivated)"""
        existing = {f.path_lower: f for f in File.query.all()}
        plan = plan_full_sync(existing, self._syncable(listing.files))
        logger.info(f"Full sync plan: {plan!r}")

        for remote in plan.to_add:
            self._add(remote)
        for current, remote in plan.to_update:
            self._update(current, remote)
        for current in plan.to_deactivate:
            current.is_active = False
        return len(plan.to_add), len(plan.to_update), len(plan.to_deactivate)

    def _deactivate_under(self, path_lower):
        # A deleted entry is either a file or a whole folder
        affected = File.query.filter(
            File.is_active.is_(True),
            (File.path_lower == path_lower)
            | File.path_lower.startswith(path_lower.rstrip('/') + '/', autoescape=True)
        ).all()
        for current in affected:
            current.is_active = False
        return len(affected)

    def apply_changes(self, changes):
        """
        Apply an incremental change set entry by entry, in feed order.

        A folder deleted and uploaded again in one window ends up active.
        Returns (added, updated, deactivated).
        """
        added = updated = deactivated = 0

        for kind, item in changes.entries:
            if kind == DELETED_ENTRY:
                deactivated += self._deactivate_under(item)
                continue
            if not is_syncable(item, self.storage_root, self.allowed_extensions):
                continue

            current = File.query.filter_by(path_lower=item.path_lower).first()
            if current is None:
                self._add(item)
                added += 1
            elif needs_update(current, item):
                self._update(current, item)
                updated += 1

        return added, updated, deactivated


def run_sync(storage, sync_type, storage_root, allowed_extensions):
    """
    Run one sync and record it in sync_logs.

    Incremental syncs need a stored cursor and a backend with a change
    feed; otherwise a full sync runs and is logged as such.
    """
    if not _sync_lock.acquire(blocking=False):
        raise SyncInProgressError('A sync is already running')

    try:
        cursor = Setting.get_value(CURSOR_SETTING_KEY)
        if sync_type == 'incremental' and not (cursor and storage.supports_changes):
            logger.info("No change cursor available, falling back to full sync")
            sync_type = 'full'

        log = SyncLog(type=sync_type, status='running')
        db_session.add(log)
        db_session.commit()
        logger.info(f"Starting {sync_type} sync of {storage_root} ({storage.name})")

        try:
            syncer = LibrarySync(storage, storage_root, allowed_extensions)
            if sync_type == 'incremental':
                changes = storage.list_changes(storage_root, cursor)
                added, updated, deactivated = syncer.apply_changes(changes)
            else:
                changes = storage.list_files(storage_root)
                added, updated, deactivated = syncer.apply_full(changes)

            if changes.cursor:
                Setting.set_value(CURSOR_SETTING_KEY, changes.cursor)

            log.files_added = added
            log.files_updated = updated
            log.files_deleted = deactivated
            log.status = 'success'
            log.completed_at = datetime.utcnow()
            db_session.commit()
        except Exception as e:
            # Any failure closes the log before propagating
            db_session.rollback()
            logger.error(f"{sync_type} sync failed: {str(e)}")
            log.status = 'error'
            log.error_message = str(e)
            log.completed_at = datetime.utcnow()
            db_session.commit()
            raise

        logger.info(f"Sync finished: {added} added, {updated} updated, {deactivated} deactivated")
        return log
    finally:
        _sync_lock.release()
