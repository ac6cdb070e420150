"""
willhaben-cli — Local stores

Starred listings and search history in one sqlite database
(~/.willhaben/willhaben.db). Both stores are synchronous; every call opens
a short-lived connection.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from willhaben_cli.config import willhaben_home
from willhaben_cli.models import HistoryItem, Listing, StarredItem

logger = logging.getLogger("willhaben.store")

HISTORY_LIMIT = 100
MIN_QUERY_LENGTH = 2


def default_db_path() -> Path:
    return willhaben_home() / "willhaben.db"


@contextmanager
def get_connection(db_path: Path) -> Iterator[sqlite3.Connection]:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def init_db(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with get_connection(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS starred_items (
                id TEXT PRIMARY KEY,
                title TEXT,
                price REAL,
                price_text TEXT,
                location TEXT,
                description TEXT,
                url TEXT,
                image_url TEXT,
                condition TEXT,
                seller_name TEXT,
                paylivery INTEGER,
                created_at TEXT
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS search_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                query TEXT NOT NULL UNIQUE,
                category_id TEXT,
                category_name TEXT,
                created_at TEXT
            )
            """
        )


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


# ═══════════════════════════════════════════════════════════════════════════
# Starred listings
# ═══════════════════════════════════════════════════════════════════════════


class StarStore:
    """Starred listings, newest first."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or default_db_path()
        init_db(self.db_path)

    def is_starred(self, listing_id: str) -> bool:
        with get_connection(self.db_path) as conn:
            row = conn.execute("SELECT 1 FROM starred_items WHERE id = ?", (listing_id,)).fetchone()
        return row is not None

    def toggle(self, listing: Listing) -> bool:
        """Flip the star. Returns the new state (True = starred)."""
        if self.is_starred(listing.id):
            self.remove(listing.id)
            return False

        with get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO starred_items
                    (id, title, price, price_text, location, description, url,
                     image_url, condition, seller_name, paylivery, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    listing.id,
                    listing.title,
                    listing.price,
                    listing.price_text,
                    listing.location,
                    listing.description,
                    listing.url,
                    listing.image_url,
                    listing.condition,
                    listing.seller_name,
                    1 if listing.paylivery else 0,
                    datetime.now().isoformat(),
                ),
            )
        logger.info(f"Starred {listing.id}")
        return True

    def remove(self, listing_id: str) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute("DELETE FROM starred_items WHERE id = ?", (listing_id,))
        logger.info(f"Unstarred {listing_id}")

    def ids(self) -> set[str]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute("SELECT id FROM starred_items").fetchall()
        return {row["id"] for row in rows}

    def list(self) -> list[StarredItem]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM starred_items ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
        return [
            StarredItem(
                id=row["id"],
                title=row["title"] or "No Title",
                price=row["price"],
                price_text=row["price_text"] or "",
                location=row["location"] or "",
                description=row["description"] or "",
                url=row["url"] or "",
                image_url=row["image_url"],
                condition=row["condition"] or "",
                seller_name=row["seller_name"] or "",
                paylivery=bool(row["paylivery"]),
                starred_at=_parse_timestamp(row["created_at"]),
            )
            for row in rows
        ]


# ═══════════════════════════════════════════════════════════════════════════
# Search history
# ═══════════════════════════════════════════════════════════════════════════


class HistoryStore:
    """
    Distinct past queries, newest first.

    Re-adding a query refreshes its recency and category instead of
    duplicating it; only the newest HISTORY_LIMIT entries survive.
    """

    def __init__(self, db_path: Path | None = None, limit: int = HISTORY_LIMIT):
        self.db_path = db_path or default_db_path()
        self.limit = limit
        init_db(self.db_path)

    def add(self, query: str, category_id: str | None = None, category_name: str | None = None) -> None:
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return

        with get_connection(self.db_path) as conn:
            # Delete + insert gives the refreshed entry a new, highest rowid
            conn.execute("DELETE FROM search_history WHERE query = ?", (query,))
            conn.execute(
                """
                INSERT INTO search_history (query, category_id, category_name, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (query, category_id or None, category_name or None, datetime.now().isoformat()),
            )
            conn.execute(
                """
                DELETE FROM search_history WHERE id NOT IN (
                    SELECT id FROM search_history ORDER BY id DESC LIMIT ?
                )
                """,
                (self.limit,),
            )

    def list(self) -> list[HistoryItem]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute("SELECT * FROM search_history ORDER BY id DESC").fetchall()
        return [
            HistoryItem(
                id=row["id"],
                query=row["query"],
                category_id=row["category_id"],
                category_name=row["category_name"],
                created_at=_parse_timestamp(row["created_at"]),
            )
            for row in rows
        ]
