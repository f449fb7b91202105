# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKBOARD_APP_NAME": "App display name (default: taskboard).",
    "TASKBOARD_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths (gitignored)
    "TASKBOARD_DATA_DIR": "Local data directory (default: .local/taskboard).",
    "TASKBOARD_STATE_PATH": "State JSON file (default: <data_dir>/state.json).",
    "TASKBOARD_STORAGE_KEY": "Record name inside the state file (default: task-manager-storage).",
    "TASKBOARD_PERSIST": "Save state to disk (true/false, default: true).",
    # Console
    "TASKBOARD_CONSOLE_ENABLED": "Run the console REPL (true/false, default: true).",
    "TASKBOARD_LOCALE": "Column labels: en or pt (default: en).",
}
