import os


def _split(value: str):
    return [part.strip() for part in value.split(",") if part.strip()]


class Config:
    database_url = os.getenv("APPSHELF_DATABASE_URL", "")
    poll_interval_seconds = float(os.getenv("APPSHELF_POLL_INTERVAL_SECONDS", "0"))

    # Admin access
    admin_emails = _split(
        os.getenv(
            "APPSHELF_ADMIN_EMAILS",
            "admin@example.com,admin2@example.com,admin3@example.com",
        )
    )
    admin_credentials_file = os.getenv("APPSHELF_ADMIN_CREDENTIALS_FILE", "")

    # Uploaded logos and screenshots
    asset_directory = os.getenv("APPSHELF_ASSET_DIRECTORY", "/var/lib/appshelf/assets")
    asset_base_url = os.getenv("APPSHELF_ASSET_BASE_URL", "http://localhost:8000/assets")

    cors_origins = _split(os.getenv("APPSHELF_CORS_ORIGINS", "http://localhost:3000"))
    log_level = os.getenv("APPSHELF_LOG_LEVEL", "INFO")

config = Config()
