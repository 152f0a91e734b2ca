import enum
import logging
import os
import sys

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ENVIRONMENT(enum.StrEnum):
    DEVELOPMENT = "dev"
    STAGING = "staging"
    PRODUCTION = "prod"


class Config:
    def __init__(self):
        load_dotenv()

        self.SERVICE_VERSION: str = self.get_service_version()
        self.ENVIRONMENT: ENVIRONMENT = ENVIRONMENT(os.getenv("ENVIRONMENT", "prod"))
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "")
        self.DRAW_TIMEZONE: str = os.getenv("DRAW_TIMEZONE", "UTC")
        self.CLAIM_WINDOW_DAYS: int = int(os.getenv("CLAIM_WINDOW_DAYS") or 14)
        self.EXTERNAL_CALL_TIMEOUT_SECONDS: int = int(
            os.getenv("EXTERNAL_CALL_TIMEOUT_SECONDS") or 30
        )
        self.DRAW_EXECUTION_INTERVAL_MINUTES: int = int(
            os.getenv("DRAW_EXECUTION_INTERVAL_MINUTES") or 5
        )
        self.EXPIRY_CHECK_HOUR: int = int(os.getenv("EXPIRY_CHECK_HOUR") or 2)
        self.STUCK_DRAW_THRESHOLD_MINUTES: int = int(
            os.getenv("STUCK_DRAW_THRESHOLD_MINUTES") or 60
        )
        self.ENTRY_CUTOFF_MINUTES: int = int(os.getenv("ENTRY_CUTOFF_MINUTES") or 60)

        self.validate_config()

    def validate_config(self):
        for key, value in vars(self).items():
            if isinstance(value, bool):
                continue
            if key == "EXPIRY_CHECK_HOUR":
                if not 0 <= value <= 23:
                    raise ValueError(
                        f"Configuration key '{key}' (int) must be between 0 and 23"
                    )
                continue
            if isinstance(value, str) and not value:
                raise ValueError(f"Configuration key '{key}' (str) is missing or empty")
            if isinstance(value, int) and value <= 0:
                raise ValueError(f"Configuration key '{key}' (int) is missing or empty")

    def get_service_version(self) -> str:
        with open("VERSION", "r") as file:
            return file.read().strip()


try:
    CONFIG = Config()
    logger.info("Loaded local configuration successfully")
except Exception as e:
    logger.critical(e)
    sys.exit(1)
