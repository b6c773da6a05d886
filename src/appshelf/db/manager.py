import sqlite3
from urllib.parse import urlparse

import psycopg2
from psycopg2.extras import RealDictCursor


class DatabaseManager:
    def __init__(self, db_url: str):
        self.db_url = db_url
        self.parsed_url = urlparse(db_url)
        self.db_type = self.parsed_url.scheme

    @property
    def placeholder(self) -> str:
        return "?" if self.db_type == "sqlite" else "%s"

    def get_connection(self):
        """Get a raw database connection whose rows convert with dict()."""
        if self.db_type == 'sqlite':
            # Remove 'sqlite:///' or 'sqlite://' prefix
            path = self.db_url.replace('sqlite:///', '').replace('sqlite://', '')
            conn = sqlite3.connect(path)
            conn.row_factory = sqlite3.Row  # Access columns by name
            return conn
        elif self.db_type == 'postgresql' or self.db_type == 'postgres':
            return psycopg2.connect(self.db_url, cursor_factory=RealDictCursor)
        else:
            raise ValueError(f"Unsupported database type: {self.db_type}")

    def execute_script(self, script: str):
        """Execute a raw SQL script."""
        conn = self.get_connection()
        try:
            cursor = conn.cursor()
            cursor.executescript(script) if self.db_type == 'sqlite' else cursor.execute(script)
            conn.commit()
        finally:
            conn.close()

    def init_schema(self):
        """Create the catalog table if it does not exist yet."""
        # Lists are stored as JSON text and timestamps as ISO-8601 text so the
        # same schema works on SQLite and PostgreSQL.
        self.execute_script(
            """
            CREATE TABLE IF NOT EXISTS catalog_items (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                description TEXT NOT NULL,
                apk_link TEXT NOT NULL,
                website_link TEXT,
                logo_url TEXT,
                screenshots TEXT NOT NULL DEFAULT '[]',
                category TEXT NOT NULL DEFAULT 'Other',
                tags TEXT NOT NULL DEFAULT '[]',
                featured BOOLEAN NOT NULL DEFAULT FALSE,
                downloads INTEGER NOT NULL DEFAULT 0,
                views INTEGER,
                rating REAL,
                version TEXT,
                size TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )

    def reset_db(self):
        """Drop and recreate the catalog table."""
        self.execute_script("DROP TABLE IF EXISTS catalog_items;")
        self.init_schema()
