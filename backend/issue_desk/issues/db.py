import os
import sqlite3
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

DB_PATH = Path(os.getenv("DB_PATH", "issue_desk/storage/issues.db"))


def get_conn() -> sqlite3.Connection:
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db() -> None:
    with get_conn() as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS issues (
              issue_id TEXT PRIMARY KEY,
              order_item_id TEXT NOT NULL,
              order_id TEXT NOT NULL,
              customer_id TEXT NOT NULL,
              reason TEXT NOT NULL,
              initial_notes TEXT,
              image_urls_json TEXT,

              status TEXT NOT NULL,
              resolved_type TEXT,
              carrier_fault TEXT NOT NULL DEFAULT 'UNKNOWN',

              rejection_reason TEXT,
              rejection_final INTEGER NOT NULL DEFAULT 0,

              concluded INTEGER NOT NULL DEFAULT 0,
              concluded_at TEXT,
              concluded_by TEXT,
              concluded_reason TEXT,

              reviewed_at TEXT,
              created_at TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS issue_messages (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              issue_id TEXT NOT NULL,
              sender TEXT NOT NULL,       -- "CUSTOMER" | "ADMIN" | "SYSTEM"
              sender_id TEXT,
              content TEXT NOT NULL,
              image_urls_json TEXT,
              email_sent INTEGER NOT NULL DEFAULT 0,
              email_sent_at TEXT,
              created_at TEXT NOT NULL,
              FOREIGN KEY (issue_id) REFERENCES issues(issue_id)
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_issues_order_item ON issues(order_item_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_issue_messages_issue ON issue_messages(issue_id)")
        conn.execute(
            """
            CREATE UNIQUE INDEX IF NOT EXISTS uq_issues_open_item ON issues(order_item_id)
            WHERE concluded = 0 AND status IN ('AWAITING_REVIEW', 'INFO_REQUESTED')
            """
        )
