# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "VELOCE_APP_NAME": "App display name (default: veloce).",
    "VELOCE_LOG_LEVEL": "Console logging level (default: INFO).",
    # AI / Perplexity
    "VELOCE_PERPLEXITY_API_KEY": (
        "Perplexity API key (PERPLEXITY_API_KEY also accepted). Unset => offline insights."
    ),
    "VELOCE_PERPLEXITY_BASE_URL": "API base URL (default: https://api.perplexity.ai).",
    "VELOCE_AI_MODEL": "Chat model name (default: sonar).",
    "VELOCE_AI_CONNECT_TIMEOUT_SECONDS": "Connect timeout (default: 5).",
    "VELOCE_AI_READ_TIMEOUT_SECONDS": "Read timeout (default: 30).",
    "VELOCE_AI_MIN_REQUEST_INTERVAL_SECONDS": "Minimum spacing between AI requests (default: 0.5).",
    "VELOCE_FALLBACK_DELAY_SECONDS": "Pause before offline insights appear (default: 0.5).",
    # Paths (gitignored)
    "VELOCE_DATA_DIR": "Local data directory (default: .local/veloce).",
    "VELOCE_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
}
