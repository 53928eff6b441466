# config.py
# Runtime settings. Override with environment variables in deployment.
import os

STORAGE = {
    "db_path": os.getenv("SICKDAY_DB_PATH", "sickday.db"),
}

ADVISORY = {
    # Unset -> remote advice disabled, local calculator only
    "url": os.getenv("SICKDAY_ADVISORY_URL", "").strip(),
    "timeout_sec": float(os.getenv("SICKDAY_ADVISORY_TIMEOUT", "10")),
}

APP = {
    "title": "SickDay Advisor API",
    "disclaimer": (
        "Advisory estimate only. Not medical advice. "
        "Always confirm doses with your diabetes team, especially if ketones are present "
        "or glucose stays high. If you feel very unwell, seek urgent medical care."
    ),
}
