"""sqlite persistence for calculator sessions.

A session is stored as the raw lines typed into it plus its display
settings; loading replays the lines into a fresh engine.
"""

import json
import logging
import sqlite3
import uuid
from typing import Any, Dict, List, Optional

from numcalc import config

logger = logging.getLogger(__name__)


# --- Database Setup ---


def get_db(database: Optional[str] = None):
    """Connects to the session database."""
    db = sqlite3.connect(database or config.DATABASE)
    db.row_factory = sqlite3.Row  # Access columns by name
    return db


def init_db(database: Optional[str] = None):
    """Creates the sessions table if needed."""
    db = None
    try:
        db = get_db(database)
        db.execute(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                session_id TEXT PRIMARY KEY,
                lines TEXT NOT NULL,
                precision INTEGER NOT NULL,
                strict INTEGER NOT NULL DEFAULT 0,
                last_updated TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )
        db.commit()
        logger.info(f"Session database ready: {database or config.DATABASE}")
    except sqlite3.Error as e:
        logger.error(f"Database initialization error: {e}")
        raise
    finally:
        if db:
            db.close()


# --- Session Persistence Functions ---


def create_session_db(database: Optional[str] = None) -> Optional[str]:
    """Creates a new, empty session and returns its ID."""
    session_id = str(uuid.uuid4())
    db = None
    try:
        db = get_db(database)
        db.execute(
            "INSERT INTO sessions (session_id, lines, precision) VALUES (?, ?, ?)",
            (session_id, json.dumps([]), config.DEFAULT_PRECISION),
        )
        db.commit()
        logger.info(f"New session created: {session_id}")
        return session_id
    except sqlite3.Error as e:
        logger.error(f"Failed to create session: {e}")
        return None
    finally:
        if db:
            db.close()


def load_session(session_id: str, database: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Returns ``{"lines": [...], "precision": n, "strict": bool}`` or None."""
    db = None
    try:
        db = get_db(database)
        row = db.execute(
            "SELECT lines, precision, strict FROM sessions WHERE session_id = ?",
            (session_id,),
        ).fetchone()
        if row is None:
            return None
        return {
            "lines": json.loads(row["lines"]),
            "precision": row["precision"],
            "strict": bool(row["strict"]),
        }
    except sqlite3.Error as e:
        logger.error(f"Failed to load session {session_id}: {e}")
        return None
    except json.JSONDecodeError as e:
        logger.error(f"Corrupted lines for session {session_id}: {e}")
        return {"lines": [], "precision": config.DEFAULT_PRECISION, "strict": False}
    finally:
        if db:
            db.close()


def save_session(
    session_id: str,
    lines: List[str],
    precision: int = config.DEFAULT_PRECISION,
    strict: bool = False,
    database: Optional[str] = None,
) -> bool:
    """Saves or updates a session."""
    db = None
    try:
        db = get_db(database)
        db.execute(
            """
            INSERT OR REPLACE INTO sessions (session_id, lines, precision, strict, last_updated)
            VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
        """,
            (session_id, json.dumps(lines), precision, int(strict)),
        )
        db.commit()
        logger.debug(f"Session {session_id} saved ({len(lines)} lines).")
        return True
    except sqlite3.Error as e:
        logger.error(f"Failed to save session {session_id}: {e}")
        return False
    finally:
        if db:
            db.close()


def delete_session_db(session_id: str, database: Optional[str] = None) -> bool:
    """Deletes a session. Returns True if a row was removed."""
    db = None
    try:
        db = get_db(database)
        cursor = db.execute("DELETE FROM sessions WHERE session_id = ?", (session_id,))
        deleted = cursor.rowcount > 0
        db.commit()
        logger.info(f"Session {session_id} deleted: {deleted}")
        return deleted
    except sqlite3.Error as e:
        logger.error(f"Failed to delete session {session_id}: {e}")
        return False
    finally:
        if db:
            db.close()


def list_sessions(database: Optional[str] = None) -> List[Dict[str, Any]]:
    db = None
    try:
        db = get_db(database)
        rows = db.execute(
            "SELECT session_id, lines, last_updated FROM sessions ORDER BY last_updated DESC"
        ).fetchall()
        return [
            {
                "session_id": row["session_id"],
                "lines": len(json.loads(row["lines"])),
                "last_updated": row["last_updated"],
            }
            for row in rows
        ]
    except (sqlite3.Error, json.JSONDecodeError) as e:
        logger.error(f"Failed to list sessions: {e}")
        return []
    finally:
        if db:
            db.close()
