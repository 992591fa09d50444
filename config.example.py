# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "STARDUST_APP_NAME": "App display name (default: stardust).",
    "STARDUST_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "STARDUST_DATA_DIR": "Local data directory, also holds stardust.log (default: .local/stardust).",
    "STARDUST_TASKS_DB_PATH": "Tasks SQLite path (default: <data_dir>/tasks.sqlite3).",
    # Access control
    "STARDUST_SECRET_PASSWORD": (
        "Shared secret expected verbatim in the Authorization header of every write. "
        "Falls back to SECRET_PASSWORD. Unset => all writes refused."
    ),
    "STARDUST_ALLOWED_ORIGINS": (
        "Comma/space separated origins. Entries starting with '.' are domain suffixes "
        "(e.g. .c.websim.com). Falls back to ALLOWED_ORIGIN."
    ),
    "STARDUST_DEFAULT_ORIGIN": "Origin sent to callers that match nothing (default: none sent).",
    # HTTP server
    "STARDUST_HOST": "Bind address (default: 127.0.0.1).",
    "STARDUST_PORT": "Port (default: 8000).",
}
