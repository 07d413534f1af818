"""Configuration for testing environment"""

import os

SETTINGS = {
    # In-memory SQLite unless a database is provided
    "SQLALCHEMY_DATABASE_URI": os.getenv("DATABASE_URL", "sqlite://"),
    "SECRET_KEY": "test-secret-key",
    "BASE_URL": "http://localhost:5173",
    "ADMIN_USERNAME": None,
    "testing": True,
    "TESTING": True,
    "RATE_LIMITING": {
        "ENABLED": False,
        "STORAGE_URI": "memory://",
    },
}
