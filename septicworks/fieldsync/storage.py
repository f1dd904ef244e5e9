"""
Local queue of maintenance forms filled in without connectivity.

Forms live in a sqlite file; their photos and videos are copied into a
spool directory so the originals can be removed from the device camera
roll before the form is synced.
"""
import json
import logging
import os
import shutil
import sqlite3
import tempfile
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

STATUSES = ('pending', 'syncing', 'synced', 'error')
RETRYABLE_STATUSES = ('pending', 'syncing', 'error')

SCHEMA = """
CREATE TABLE IF NOT EXISTS forms (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    visit_id INTEGER NOT NULL,
    submission_id TEXT NOT NULL UNIQUE,
    form_data TEXT NOT NULL,
    files TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    attempts INTEGER NOT NULL DEFAULT 0,
    permanent INTEGER NOT NULL DEFAULT 0,
    last_error TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


def _now():
    return datetime.now(timezone.utc).isoformat()


class OfflineStore:
    def __init__(self, root):
        self.root = os.path.abspath(os.path.expanduser(root))
        self.spool_dir = os.path.join(self.root, 'spool')
        self.db_path = os.path.join(self.root, 'fieldsync.sqlite3')
        os.makedirs(self.spool_dir, exist_ok=True)
        with self._connect() as conn:
            conn.execute(SCHEMA)

    @contextmanager
    def _connect(self):
        """Connection committed on success and closed on exit"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _row_to_dict(self, row):
        if row is None:
            return None
        record = dict(row)
        record['form_data'] = json.loads(record['form_data'])
        record['files'] = json.loads(record['files'])
        record['permanent'] = bool(record['permanent'])
        return record

    def _spool_files(self, submission_id, files):
        """Copy (field_name, path) pairs into the spool; returns the stored descriptors"""
        target_dir = os.path.join(self.spool_dir, submission_id)
        # Sources may live in target_dir; it is replaced only once every copy succeeded
        staging_dir = tempfile.mkdtemp(prefix=f".{submission_id}-", dir=self.spool_dir)
        stored = []
        try:
            for index, (field_name, path) in enumerate(files):
                name = os.path.basename(path)
                if os.path.dirname(os.path.abspath(path)) == target_dir:
                    name = name.split('_', 1)[-1]
                # Prefix keeps two uploads with the same file name apart
                spooled_name = f"{index:03d}_{name}"
                shutil.copy2(path, os.path.join(staging_dir, spooled_name))
                stored.append({'field_name': field_name, 'name': name,
                               'path': os.path.join(target_dir, spooled_name)})
        except OSError:
            shutil.rmtree(staging_dir, ignore_errors=True)
            raise
        shutil.rmtree(target_dir, ignore_errors=True)
        os.replace(staging_dir, target_dir)
        return stored

    def save_form(self, visit_id, form_data, files=None):
        """
        Queue a completed form for a visit.

        Saving again for a visit that is still queued replaces the form and
        its files but keeps the submission_id, so a retry of a request whose
        response was lost is still recognised by the server.
        """
        files = list(files or [])
        existing = self._find_queued(visit_id)
        submission_id = existing['submission_id'] if existing else uuid.uuid4().hex

        stored_files = self._spool_files(submission_id, files)
        now = _now()

        with self._connect() as conn:
            if existing:
                conn.execute(
                    "UPDATE forms SET form_data = ?, files = ?, status = 'pending', permanent = 0, "
                    "last_error = NULL, updated_at = ? WHERE id = ?",
                    (json.dumps(form_data), json.dumps(stored_files), now, existing['id']),
                )
                form_id = existing['id']
            else:
                cursor = conn.execute(
                    "INSERT INTO forms (visit_id, submission_id, form_data, files, status, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, 'pending', ?, ?)",
                    (int(visit_id), submission_id, json.dumps(form_data), json.dumps(stored_files), now, now),
                )
                form_id = cursor.lastrowid

        logger.info(f"Queued form {form_id} for visit {visit_id} with {len(stored_files)} file(s)")
        return self.get(form_id)

    def _find_queued(self, visit_id):
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM forms WHERE visit_id = ? AND status != 'synced' ORDER BY id DESC LIMIT 1",
                (int(visit_id),),
            ).fetchone()
        return self._row_to_dict(row)

    def get(self, form_id):
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM forms WHERE id = ?", (form_id,)).fetchone()
        return self._row_to_dict(row)

    def list_pending(self):
        """Forms a sync run should attempt: not synced and not permanently rejected"""
        placeholders = ', '.join('?' for _ in RETRYABLE_STATUSES)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM forms WHERE status IN ({placeholders}) AND permanent = 0 ORDER BY created_at, id",
                RETRYABLE_STATUSES,
            ).fetchall()
        return [self._row_to_dict(row) for row in rows]

    def list_all(self):
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM forms ORDER BY created_at, id").fetchall()
        return [self._row_to_dict(row) for row in rows]

    def update_status(self, form_id, status, error=None, permanent=False):
        if status not in STATUSES:
            raise ValueError(f"Unknown status: {status}")
        with self._connect() as conn:
            conn.execute(
                "UPDATE forms SET status = ?, last_error = ?, permanent = ?, updated_at = ?, "
                "attempts = attempts + ? WHERE id = ?",
                (status, error, int(permanent), _now(), 1 if status == 'syncing' else 0, form_id),
            )

    def remove(self, form_id):
        """Drop a form and its spooled files"""
        record = self.get(form_id)
        if record is None:
            return False
        shutil.rmtree(os.path.join(self.spool_dir, record['submission_id']), ignore_errors=True)
        with self._connect() as conn:
            conn.execute("DELETE FROM forms WHERE id = ?", (form_id,))
        return True

    def stats(self):
        counts = {status: 0 for status in STATUSES}
        with self._connect() as conn:
            for row in conn.execute("SELECT status, COUNT(*) AS total FROM forms GROUP BY status"):
                counts[row['status']] = row['total']
            permanent = conn.execute("SELECT COUNT(*) FROM forms WHERE permanent = 1").fetchone()[0]

        spool_bytes = 0
        for dirpath, _dirnames, filenames in os.walk(self.spool_dir):
            spool_bytes += sum(os.path.getsize(os.path.join(dirpath, name)) for name in filenames)

        return {
            'total': sum(counts.values()),
            'by_status': counts,
            'rejected': permanent,
            'spool_bytes': spool_bytes,
        }
