#!/usr/bin/env python3
"""
Basic usage example for GuardedDB.

Runs the handler against an in-memory SQLite database.
"""

import os
import sys
import logging
import tempfile

# Add the parent directory to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from guardeddb import connect
from guardeddb.utils.logging import configure_logger

# Configure logging
configure_logger(level=logging.INFO)
logger = logging.getLogger("guardeddb")


def main():
    log_file = os.path.join(tempfile.gettempdir(), "guardeddb-example.log")

    db = connect(
        debug=True,
        log_file=log_file,
        allowed_tables=["users"],
        allowed_columns=["id", "name", "email", "phone", "password", "created_at"],
        allowed_functions=["LOWER", "UPPER", "LENGTH"],
        db={"driver": "sqlite", "database": ":memory:"},
    )

    with db:
        db.custom_query("""
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT UNIQUE,
            phone TEXT,
            password TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
        """)

        result = db.insert("users", {
            "name": "arun",
            "email": "arun@example.com",
            "phone": "8070800096",
            "password": db.hash_password("12345"),
        }, echo=True)
        print(f"Insert: {result}")

        db.insert("users", {"name": "bea", "email": "Bea@example.com", "phone": "555"})

        result = db.select_all("users", "id, name, email", "", [], "LOWER(email) DESC", "10", echo=True)
        print("\nUsers by email:")
        for user in result["data"]:
            print(f"ID: {user['id']}, Name: {user['name']}, Email: {user['email']}")

        # Rejected before anything reaches the database
        print(f"\nUnknown table: {db.select_all('secrets')}")
        print(f"Bad ORDER BY: {db.select_all('users', order_by='SLEEP(5)')}")
        print(f"Bad LIMIT: {db.select_all('users', limit='10; DROP TABLE users')}")
        print(f"Delete without WHERE: {db.delete('users', '')}")

        result = db.update("users", {"phone": "8070800097"}, "email = ?", ["arun@example.com"])
        print(f"\nUpdate: {result}")

        user = db.select_one("users", "password", "name = ?", ["arun"])["data"]
        print(f"Password check: {db.verify_password('12345', user['password'])}")

    print(f"\nQuery log written to {log_file}")


if __name__ == "__main__":
    main()
