"""
Lead Store
==========

SQLite persistence for lead records.

Schema:
    leads(id INTEGER PRIMARY KEY AUTOINCREMENT, name, email, phone,
          company, image_url, created_at)

Each operation opens its own connection, so the store can be used from
worker threads.
"""

import logging
import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError

from capturecam.config import StorageConfig
from capturecam.models.storage import Lead, LeadCreate


logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS leads (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT,
    email       TEXT,
    phone       TEXT,
    company     TEXT,
    image_url   TEXT,
    created_at  TEXT NOT NULL
)
"""

COLUMNS = ("id", "name", "email", "phone", "company", "image_url", "created_at")


class LeadValidationError(Exception):
    """Raised when a lead payload fails validation."""
    pass


def validate_lead(data: Union[LeadCreate, Mapping[str, Any]]) -> LeadCreate:
    """
    Coerce a payload into a LeadCreate.

    Raises:
        LeadValidationError: With the first validation message
    """
    if isinstance(data, LeadCreate):
        return data
    try:
        return LeadCreate.model_validate(data)
    except ValidationError as e:
        message = e.errors()[0]["msg"].removeprefix("Value error, ")
        raise LeadValidationError(message) from e


class LeadStore:
    """
    Lead records in a single SQLite file.

    Attributes:
        db_path: Database file; its parent directory is created on demand
    """

    def __init__(self, config: Optional[StorageConfig] = None) -> None:
        self.config = config or StorageConfig()
        self.db_path = Path(self.config.leads_db_path)

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def init_schema(self) -> None:
        """Create the leads table if it does not exist."""
        with closing(self._connect()) as conn, conn:
            conn.execute(SCHEMA)
        logger.info(f"Lead store ready at {self.db_path}")

    def create(self, data: Union[LeadCreate, Mapping[str, Any]]) -> Lead:
        """
        Insert a lead.

        Raises:
            LeadValidationError: If no name, email or phone is given
            sqlite3.Error: On database failure
        """
        lead = validate_lead(data)
        created_at = datetime.now(timezone.utc)

        with closing(self._connect()) as conn, conn:
            cursor = conn.execute(
                "INSERT INTO leads (name, email, phone, company, image_url, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    lead.name,
                    lead.email,
                    lead.phone,
                    lead.company,
                    lead.image_url,
                    created_at.isoformat(),
                ),
            )
            lead_id = cursor.lastrowid

        logger.info(f"Lead {lead_id} created")
        return Lead(id=lead_id, created_at=created_at, **lead.model_dump())

    def get(self, lead_id: int) -> Optional[Lead]:
        with closing(self._connect()) as conn:
            row = conn.execute(
                f"SELECT {', '.join(COLUMNS)} FROM leads WHERE id = ?",
                (lead_id,),
            ).fetchone()
        return self._to_lead(row) if row else None

    def list(self) -> List[Lead]:
        """All leads, newest first."""
        with closing(self._connect()) as conn:
            rows = conn.execute(
                f"SELECT {', '.join(COLUMNS)} FROM leads "
                f"ORDER BY created_at DESC, id DESC"
            ).fetchall()
        return [self._to_lead(row) for row in rows]

    @staticmethod
    def _to_lead(row: tuple) -> Lead:
        return Lead.model_validate(dict(zip(COLUMNS, row)))
