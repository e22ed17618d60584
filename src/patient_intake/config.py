"""Configuration loader for Patient Intake with environment-specific support"""

import os
from pathlib import Path

from dotenv import load_dotenv

project_dir = Path(__file__).parent.parent.parent
env_path = project_dir / ".env"

# Load .env file if it exists. For local development only.
if env_path.exists():
    load_dotenv(env_path)


def _split_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


# Configuration dictionary - set once at initialization
config = {
    # "json" (default), "sql" or "airtable"
    "storage_backend": os.getenv("STORAGE_BACKEND", "json").strip().lower(),
    "data_file": os.getenv("PATIENTS_FILE", "data/patients.json"),
    "database_url": os.getenv("DATABASE_URL"),
    "airtable_base_id": os.getenv("AIRTABLE_BASE_ID"),
    "airtable_table_id": os.getenv("AIRTABLE_TABLE_ID"),
    "airtable_token": os.getenv("AIRTABLE_TOKEN"),
    "airtable_timeout": float(os.getenv("AIRTABLE_TIMEOUT", "10.0")),
    "admin_api_key": os.getenv("ADMIN_API_KEY"),
    "cors_origins": _split_origins(os.getenv("CORS_ORIGINS", "*")),
    "port": int(os.getenv("PORT", "3000")),
    "log_level": os.getenv("LOG_LEVEL", "INFO"),
    "environment": os.getenv("ENVIRONMENT", "development"),
}
