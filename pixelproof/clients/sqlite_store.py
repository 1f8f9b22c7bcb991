"""SQLite-backed persistence for projects, Figma credentials and baselines."""

from __future__ import annotations

import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

from pixelproof.models.baseline import BaselineSnapshot
from pixelproof.models.oauth import StoredFigmaCredential
from pixelproof.models.project import Project

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS projects (
        id TEXT PRIMARY KEY,
        org_id TEXT NOT NULL,
        name TEXT NOT NULL,
        url TEXT,
        figma_file_key TEXT,
        figma_frame_id TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS projects_org_id_idx ON projects (org_id)",
    """
    CREATE TABLE IF NOT EXISTS memberships (
        org_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        PRIMARY KEY (org_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS oauth_credentials (
        id TEXT PRIMARY KEY,
        project_id TEXT NOT NULL UNIQUE
            REFERENCES projects (id) ON DELETE CASCADE,
        access_token TEXT NOT NULL,
        refresh_token TEXT NOT NULL,
        access_token_expires_at TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS baseline_snapshots (
        id TEXT PRIMARY KEY,
        project_id TEXT NOT NULL
            REFERENCES projects (id) ON DELETE CASCADE,
        figma_file_key TEXT NOT NULL,
        figma_frame_id TEXT,
        data TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS baseline_snapshots_project_created_idx
        ON baseline_snapshots (project_id, created_at)
    """,
    """
    CREATE INDEX IF NOT EXISTS baseline_snapshots_project_frame_idx
        ON baseline_snapshots (project_id, figma_frame_id)
    """,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


class SQLiteStore:
    """Relational store used by the Figma integration.

    Each call opens a short-lived connection; multi-statement writes that must
    not interleave run inside ``BEGIN IMMEDIATE`` transactions.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False, timeout=10.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._session() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    # Projects ---------------------------------------------------------------

    def create_project(
        self,
        *,
        org_id: str,
        name: str,
        url: str | None = None,
        figma_file_key: str | None = None,
        figma_frame_id: str | None = None,
        project_id: str | None = None,
    ) -> Project:
        now = _iso(_now())
        project_id = project_id or uuid.uuid4().hex
        with self._session() as conn:
            conn.execute(
                """
                INSERT INTO projects
                    (id, org_id, name, url, figma_file_key, figma_frame_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (project_id, org_id, name, url, figma_file_key, figma_frame_id, now, now),
            )
        project = self.get_project(project_id)
        assert project is not None
        return project

    def get_project(self, project_id: str) -> Optional[Project]:
        with self._session() as conn:
            row = conn.execute(
                "SELECT * FROM projects WHERE id = ?", (project_id,)
            ).fetchone()
        if not row:
            return None
        return Project(**dict(row))

    def update_project_frame(
        self,
        project_id: str,
        *,
        figma_frame_id: str,
        figma_file_key: str | None = None,
    ) -> Optional[Project]:
        """Select the tracked frame, optionally relinking the Figma file."""
        with self._session() as conn:
            cursor = conn.execute(
                """
                UPDATE projects
                SET figma_frame_id = ?,
                    figma_file_key = COALESCE(?, figma_file_key),
                    updated_at = ?
                WHERE id = ?
                """,
                (figma_frame_id, figma_file_key, _iso(_now()), project_id),
            )
            updated = cursor.rowcount
        if updated == 0:
            return None
        return self.get_project(project_id)

    def delete_project(self, project_id: str) -> None:
        """Delete a project; credentials and snapshots cascade."""
        with self._session() as conn:
            conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))

    # Memberships ------------------------------------------------------------

    def add_membership(self, *, org_id: str, user_id: str) -> None:
        with self._session() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO memberships (org_id, user_id) VALUES (?, ?)",
                (org_id, user_id),
            )

    def user_has_project_access(self, *, project_id: str, user_id: str) -> bool:
        with self._session() as conn:
            row = conn.execute(
                """
                SELECT 1 FROM projects p
                JOIN memberships m ON m.org_id = p.org_id
                WHERE p.id = ? AND m.user_id = ?
                """,
                (project_id, user_id),
            ).fetchone()
        return row is not None

    # Credentials ------------------------------------------------------------

    def get_credential(self, project_id: str) -> Optional[StoredFigmaCredential]:
        with self._session() as conn:
            row = conn.execute(
                "SELECT * FROM oauth_credentials WHERE project_id = ?", (project_id,)
            ).fetchone()
        if not row:
            return None
        return StoredFigmaCredential(**dict(row))

    def has_credential(self, project_id: str) -> bool:
        with self._session() as conn:
            row = conn.execute(
                "SELECT 1 FROM oauth_credentials WHERE project_id = ?", (project_id,)
            ).fetchone()
        return row is not None

    def upsert_credential(
        self,
        *,
        project_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> StoredFigmaCredential:
        """Insert or replace the tokens of the project's single credential."""
        now = _iso(_now())
        with self._session() as conn:
            conn.execute(
                """
                INSERT INTO oauth_credentials
                    (id, project_id, access_token, refresh_token,
                     access_token_expires_at, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(project_id) DO UPDATE SET
                    access_token = excluded.access_token,
                    refresh_token = excluded.refresh_token,
                    access_token_expires_at = excluded.access_token_expires_at,
                    updated_at = excluded.updated_at
                """,
                (
                    uuid.uuid4().hex,
                    project_id,
                    access_token,
                    refresh_token,
                    _iso(expires_at),
                    now,
                    now,
                ),
            )
        credential = self.get_credential(project_id)
        assert credential is not None
        return credential

    def update_credential_tokens(
        self,
        credential_id: str,
        *,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> StoredFigmaCredential:
        """Replace tokens on an existing credential, keeping its id."""
        with self._session() as conn:
            conn.execute(
                """
                UPDATE oauth_credentials
                SET access_token = ?, refresh_token = ?,
                    access_token_expires_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (access_token, refresh_token, _iso(expires_at), _iso(_now()), credential_id),
            )
            row = conn.execute(
                "SELECT * FROM oauth_credentials WHERE id = ?", (credential_id,)
            ).fetchone()
        if not row:
            raise LookupError(f"Credential {credential_id} no longer exists")
        return StoredFigmaCredential(**dict(row))

    # Baseline snapshots -----------------------------------------------------

    def upsert_baseline_snapshot(
        self,
        *,
        project_id: str,
        figma_file_key: str,
        figma_frame_id: str,
        data: Dict[str, Any],
    ) -> Tuple[BaselineSnapshot, bool]:
        """Store the snapshot for a frame; returns ``(snapshot, created)``.

        The lookup and the write share one immediate transaction so two
        builds for the same frame cannot both insert.
        """
        data_json = json.dumps(data)
        with self._transaction() as conn:
            existing = conn.execute(
                """
                SELECT id FROM baseline_snapshots
                WHERE project_id = ? AND figma_frame_id = ?
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (project_id, figma_frame_id),
            ).fetchone()

            if existing:
                snapshot_id = existing["id"]
                conn.execute(
                    """
                    UPDATE baseline_snapshots
                    SET data = ?, figma_file_key = ?, figma_frame_id = ?
                    WHERE id = ?
                    """,
                    (data_json, figma_file_key, figma_frame_id, snapshot_id),
                )
                created = False
            else:
                snapshot_id = uuid.uuid4().hex
                conn.execute(
                    """
                    INSERT INTO baseline_snapshots
                        (id, project_id, figma_file_key, figma_frame_id, data, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        snapshot_id,
                        project_id,
                        figma_file_key,
                        figma_frame_id,
                        data_json,
                        _iso(_now()),
                    ),
                )
                created = True

            row = conn.execute(
                "SELECT * FROM baseline_snapshots WHERE id = ?", (snapshot_id,)
            ).fetchone()

        return self._snapshot_from_row(row), created

    def get_latest_baseline_snapshot(
        self, project_id: str, *, figma_frame_id: str | None = None
    ) -> Optional[BaselineSnapshot]:
        query = "SELECT * FROM baseline_snapshots WHERE project_id = ?"
        params: list[Any] = [project_id]
        if figma_frame_id is not None:
            query += " AND figma_frame_id = ?"
            params.append(figma_frame_id)
        query += " ORDER BY created_at DESC, rowid DESC LIMIT 1"
        with self._session() as conn:
            row = conn.execute(query, params).fetchone()
        if not row:
            return None
        return self._snapshot_from_row(row)

    def count_baseline_snapshots(self, project_id: str) -> int:
        with self._session() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total FROM baseline_snapshots WHERE project_id = ?",
                (project_id,),
            ).fetchone()
        return int(row["total"])

    @staticmethod
    def _snapshot_from_row(row: sqlite3.Row) -> BaselineSnapshot:
        record = dict(row)
        record["data"] = json.loads(record["data"])
        return BaselineSnapshot(**record)


__all__ = ["SQLiteStore"]
