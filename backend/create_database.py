"""Create the conversation store, and optionally a sample project database."""

import sqlite3
import sys
from pathlib import Path

from app.core.config import settings
from app.db.database import SCHEMA_SQL, INDEX_SQL
from app.services.schema_inspector import SAMPLE_SCHEMA_SQL

DB_PATH = Path(settings.database_path)


def create_database():
    """Create database with schema."""
    if DB_PATH.exists():
        print(f"Database already exists at: {DB_PATH}")
        response = input("Do you want to recreate it? (y/N): ")
        if response.lower() != 'y':
            print("Skipping database creation.")
            return

        DB_PATH.unlink()
        print("Deleted existing database.")

    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DB_PATH)
    cursor = conn.cursor()

    # Execute schema
    cursor.executescript(f"{SCHEMA_SQL};\n{INDEX_SQL};")

    conn.commit()
    conn.close()

    print(f"Database created successfully at: {DB_PATH}")


def create_sample_project(project_id: str):
    """Seed a project's embedded database with the sample todos table."""
    path = Path(settings.project_database_url(project_id).removeprefix("sqlite:///"))
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path)
    conn.executescript(SAMPLE_SCHEMA_SQL)
    conn.commit()
    conn.close()

    print(f"Sample database created at: {path}")


if __name__ == "__main__":
    create_database()
    if len(sys.argv) > 1:
        create_sample_project(sys.argv[1])
