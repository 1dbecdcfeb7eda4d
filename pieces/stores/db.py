"""
Database store implementation.
"""

import logging
import os
import sqlite3
import threading
from pathlib import Path

from pieces.stores.types import StoreBase
from pieces.types import PageMeta, Piece, PieceListResult, PieceLocation

logger = logging.getLogger(__name__)


class DbStore(StoreBase):
    """
    Database-based store implementation.

    Unique keys live in the schema, so two requests creating the same piece,
    location or page meta at once end up sharing a single row.
    """

    def __init__(self, url: str):
        super().__init__(url)
        logger.info("Connecting to database: %s", url)
        if not url.startswith("sqlite://"):
            raise ValueError("Database URL must start with sqlite://")
        path = url.replace("sqlite://", "")
        if path != ":memory:":
            os.makedirs(Path(path).parent, exist_ok=True)
        # one connection shared by the server threads
        self.lock = threading.RLock()
        self.conn = sqlite3.connect(path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")

        self.make_migrations()

    def close(self) -> None:
        with self.lock:
            self.conn.close()

    def make_migrations(self) -> None:
        """
        Make migrations to the database.
        """
        with self.lock, self.conn:
            cursor = self.conn.cursor()
            cursor.execute(
                "CREATE TABLE IF NOT EXISTS pieces ("
                "id INTEGER PRIMARY KEY AUTOINCREMENT, "
                "code TEXT NOT NULL UNIQUE, "
                "content TEXT NOT NULL DEFAULT '')"
            )
            cursor.execute(
                "CREATE TABLE IF NOT EXISTS piece_locations ("
                "id INTEGER PRIMARY KEY AUTOINCREMENT, "
                "piece_id INTEGER NOT NULL REFERENCES pieces(id) ON DELETE CASCADE, "
                "view TEXT NOT NULL, "
                "namespace TEXT NOT NULL, "
                "UNIQUE (piece_id, view, namespace))"
            )
            cursor.execute(
                "CREATE TABLE IF NOT EXISTS page_meta ("
                "id INTEGER PRIMARY KEY AUTOINCREMENT, "
                "namespace TEXT NOT NULL, "
                "view TEXT NOT NULL, "
                "code TEXT NOT NULL, "
                "title TEXT NOT NULL DEFAULT '', "
                "description TEXT NOT NULL DEFAULT '', "
                "keywords TEXT NOT NULL DEFAULT '', "
                "html TEXT NOT NULL DEFAULT '', "
                "UNIQUE (namespace, view, code))"
            )

    def find_piece(self, code: str) -> Piece | None:
        with self.lock, self.conn:
            cursor = self.conn.cursor()
            cursor.execute("SELECT id, code, content FROM pieces WHERE code = ?", (code,))
            result = cursor.fetchone()
        if not result:
            return None
        piece = Piece.from_dict(dict(result))
        piece.locations = self.load_locations(piece.id)
        return piece

    def load_locations(self, piece_id: int) -> list[PieceLocation]:
        with self.lock, self.conn:
            cursor = self.conn.cursor()
            cursor.execute(
                "SELECT id, piece_id, view, namespace FROM piece_locations "
                "WHERE piece_id = ? ORDER BY id",
                (piece_id,),
            )
            return [PieceLocation.from_dict(dict(row)) for row in cursor.fetchall()]

    def save_piece(self, piece: Piece) -> Piece:
        with self.lock, self.conn:
            cursor = self.conn.cursor()
            if piece.is_loaded():
                cursor.execute(
                    "UPDATE pieces SET code = ?, content = ? WHERE id = ?",
                    (piece.code, piece.content, piece.id),
                )
                logger.info("Saved piece code=%s", piece.code)
                return piece

            cursor.execute(
                "INSERT INTO pieces (code, content) VALUES (?, ?) "
                "ON CONFLICT (code) DO NOTHING",
                (piece.code, piece.content),
            )
            if cursor.rowcount == 1:
                piece.id = cursor.lastrowid
                logger.info("Created piece code=%s id=%s", piece.code, piece.id)
                return piece

        # somebody else created it meanwhile, that one wins
        logger.warning("Piece code=%s already exists, using stored one", piece.code)
        stored = self.find_piece(piece.code)
        piece.id = stored.id
        piece.content = stored.content
        piece.locations = stored.locations
        return piece

    def list_pieces(self, *, offset: int = 0, limit: int = 10) -> PieceListResult:
        with self.lock, self.conn:
            cursor = self.conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM pieces")
            count = cursor.fetchone()[0]
            results = []
            if limit > 0:
                cursor.execute(
                    "SELECT id, code, content FROM pieces ORDER BY code LIMIT ? OFFSET ?",
                    (limit, offset),
                )
                results = [Piece.from_dict(dict(row)) for row in cursor.fetchall()]

        for piece in results:
            piece.locations = self.load_locations(piece.id)
        return PieceListResult(count=count, results=results)

    def save_location(self, location: PieceLocation) -> PieceLocation:
        with self.lock, self.conn:
            cursor = self.conn.cursor()
            if location.is_loaded():
                cursor.execute(
                    "UPDATE piece_locations SET view = ?, namespace = ? WHERE id = ?",
                    (location.view, location.namespace, location.id),
                )
                return location

            cursor.execute(
                "INSERT INTO piece_locations (piece_id, view, namespace) VALUES (?, ?, ?) "
                "ON CONFLICT (piece_id, view, namespace) DO NOTHING",
                (location.piece_id, location.view, location.namespace),
            )
            if cursor.rowcount == 1:
                location.id = cursor.lastrowid
            else:
                cursor.execute(
                    "SELECT id FROM piece_locations "
                    "WHERE piece_id = ? AND view = ? AND namespace = ?",
                    (location.piece_id, location.view, location.namespace),
                )
                location.id = cursor.fetchone()["id"]
        logger.debug(
            "Saved location piece_id=%s view=%s namespace=%s",
            location.piece_id,
            location.view,
            location.namespace,
        )
        return location

    def delete_location(self, location: PieceLocation) -> bool:
        with self.lock, self.conn:
            cursor = self.conn.cursor()
            cursor.execute("DELETE FROM piece_locations WHERE id = ?", (location.id,))
            if cursor.rowcount == 0:
                logger.error(
                    "Failed to delete location id=%s, maybe does not exist in db?",
                    location.id,
                )
                return False
        logger.info(
            "Deleted location piece_id=%s view=%s namespace=%s",
            location.piece_id,
            location.view,
            location.namespace,
        )
        return True

    def find_meta(self, namespace: str, view: str, code: str) -> PageMeta | None:
        with self.lock, self.conn:
            cursor = self.conn.cursor()
            cursor.execute(
                "SELECT * FROM page_meta WHERE namespace = ? AND view = ? AND code = ?",
                (namespace, view, code),
            )
            result = cursor.fetchone()
        if result:
            return PageMeta.from_dict(dict(result))
        return None

    def save_meta(self, meta: PageMeta) -> PageMeta:
        editable = PageMeta.editable_fields()
        values = [getattr(meta, name) for name in editable]
        with self.lock, self.conn:
            cursor = self.conn.cursor()
            if meta.is_loaded():
                assignments = ", ".join(f"{name} = ?" for name in editable)
                cursor.execute(
                    f"UPDATE page_meta SET {assignments} WHERE id = ?",
                    (*values, meta.id),
                )
                logger.info("Saved page meta id=%s", meta.id)
                return meta

            columns = [*PageMeta.KEY_FIELDS, *editable]
            cursor.execute(
                f"INSERT INTO page_meta ({', '.join(columns)}) "
                f"VALUES ({', '.join('?' for _ in columns)}) "
                "ON CONFLICT (namespace, view, code) DO NOTHING",
                (meta.namespace, meta.view, meta.code, *values),
            )
            if cursor.rowcount == 1:
                meta.id = cursor.lastrowid
                logger.info(
                    "Created page meta namespace=%s view=%s code=%s",
                    meta.namespace,
                    meta.view,
                    meta.code,
                )
                return meta

        logger.warning(
            "Page meta namespace=%s view=%s code=%s already exists, using stored one",
            meta.namespace,
            meta.view,
            meta.code,
        )
        stored = self.find_meta(meta.namespace, meta.view, meta.code)
        for name in ["id", *editable]:
            setattr(meta, name, getattr(stored, name))
        return meta
