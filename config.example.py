# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets: keep the Matrix password in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "RELTRACK_APP_NAME": "App display name (default: release-tracker).",
    "RELTRACK_LOG_LEVEL": "Console logging level (default: INFO).",
    # Alert surfaces
    "RELTRACK_CONSOLE_ENABLED": "Run the console REPL and print reminders there (true/false).",
    "RELTRACK_MATRIX_ENABLED": "Post reminders into Matrix rooms (true/false).",
    # Matrix
    "RELTRACK_MATRIX_HOMESERVER": "Matrix homeserver URL.",
    "RELTRACK_MATRIX_USER_ID": "Matrix user ID (bot).",
    "RELTRACK_MATRIX_PASSWORD": "Password for first login (session stored locally).",
    "RELTRACK_MATRIX_ROOMS": "Room IDs that receive reminders (empty => Matrix alerts are refused).",
    # Paths (gitignored)
    "RELTRACK_DATA_DIR": "Local data directory (default: .local/release-tracker).",
    "RELTRACK_DB_PATH": "Tasks + notifications SQLite path (default: <data_dir>/release_tracker.sqlite3).",
    "RELTRACK_MATRIX_STORE_PATH": "Matrix session store path (default: <data_dir>/matrix_store).",
    # Reminder tuning
    "RELTRACK_REMINDER_MAX_WAIT_SECONDS": "Longest single timer wait before re-arming (default: 3600).",
    "RELTRACK_REMINDER_FIRE_SLACK_SECONDS": "Fire immediately when this close to due (default: 1).",
    "RELTRACK_REMINDER_RECHECK_INTERVAL_SECONDS": "Periodic reconcile interval (default: 60).",
    "RELTRACK_ALERT_TITLE": "Title shown on every reminder (default: Release Task Reminder).",
}
