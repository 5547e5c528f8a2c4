import os


def getenv_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_config():
    return {
        "object_store": {
            "s3_bucket": os.getenv("MYPASTEBIN_S3_BUCKET"),
            "s3_prefix": os.getenv("MYPASTEBIN_S3_PREFIX", "pastebin/"),
            "s3_bucket_url": os.getenv("MYPASTEBIN_S3_BUCKET_URL", ""),
            "endpoint_url": os.getenv("MYPASTEBIN_S3_ENDPOINT_URL", ""),
            "max_size": int(
                os.getenv("MYPASTEBIN_S3_MAX_SIZE", 2 * 1024 * 1024)
            ),
            "encoding": os.getenv("MYPASTEBIN_TEXT_ENCODING", "utf-8"),
        },
        "database": {
            "host": os.getenv("MYPASTEBIN_DB_HOST", "localhost"),
            "port": int(os.getenv("MYPASTEBIN_DB_PORT", 5432)),
            "database": os.getenv("MYPASTEBIN_DB_DATABASE"),
            "user": os.getenv("MYPASTEBIN_DB_USER"),
            "password": os.getenv("MYPASTEBIN_DB_PASSWORD"),
            "pool_size": int(os.getenv("MYPASTEBIN_DB_CON_POOL_SIZE", 10)),
        },
        "app": {
            "log_level": os.getenv("MYPASTEBIN_LOG_LEVEL", "info"),
            "production": getenv_bool("MYPASTEBIN_PRODUCTION"),
            "bot_score_threshold": float(
                os.getenv("MYPASTEBIN_BOT_SCORE_THRESHOLD", 0.5)
            ),
            "api_bot_score": float(os.getenv("MYPASTEBIN_API_BOT_SCORE", 0.5)),
            "update_views_interval": int(
                os.getenv("MYPASTEBIN_UPDATE_VIEWS_INTERVAL", 300)
            ),
            "secret_key": os.getenv("MYPASTEBIN_SECRET_KEY"),
            "recent_pastes": int(os.getenv("MYPASTEBIN_RECENT_PASTES", 10)),
        },
        "cdn": {
            "enabled": getenv_bool("MYPASTEBIN_CDN_ENABLED"),
            "purge_url": os.getenv("MYPASTEBIN_CDN_PURGE_URL", ""),
            "api_key": os.getenv("MYPASTEBIN_CDN_API_KEY", ""),
            "batch_size": int(os.getenv("MYPASTEBIN_CDN_BATCH_SIZE", 10)),
            "cleanup_interval": int(
                os.getenv("MYPASTEBIN_CDN_CLEANUP_INTERVAL", 3600)
            ),
        },
        "gdrive": {
            "api_url": os.getenv(
                "MYPASTEBIN_GDRIVE_API_URL",
                "https://www.googleapis.com/drive/v3/files",
            ),
            "upload_url": os.getenv(
                "MYPASTEBIN_GDRIVE_UPLOAD_URL",
                "https://www.googleapis.com/upload/drive/v3/files",
            ),
            "folder_name": os.getenv(
                "MYPASTEBIN_GDRIVE_FOLDER_NAME", "Pastebin!!"
            ),
        },
    }


def missing_values(cnf, prefix=""):
    """Yield the dotted keys of every ``None`` value in a nested config."""
    for key, value in cnf.items():
        if isinstance(value, dict):
            yield from missing_values(value, f"{prefix}{key}.")
        elif value is None:
            yield f"{prefix}{key}"


def check_config(cnf):
    missing = sorted(missing_values(cnf))
    if missing:
        raise ValueError(
            f"The following values should not be None: {', '.join(missing)}"
        )


config = get_config()
