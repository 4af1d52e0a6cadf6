# relay_alarm/core/env_settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import ValidationError
from pathlib import Path
from typing import List

def get_env_path() -> Path:
    try:
        BASE_DIR = Path(__file__).resolve().parents[2]
        ENV_PATH = BASE_DIR / 'secrets' / 'app.env'
        if not ENV_PATH.exists():
            # Fallback to common Docker environment paths
            ENV_PATH = Path('/app/secrets/app.env')
            if not ENV_PATH.exists():
                ENV_PATH = Path('/app/app.env')

    except (NameError, ValueError, ValidationError):
        BASE_DIR = Path('/app')
        ENV_PATH = BASE_DIR / 'app.env'
    return ENV_PATH

class EnvSettings(BaseSettings):
    APP_NAME: str = 'Relay Alarm'
    SECRET_KEY: str = 'your_secret_key'
    ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    LOG_LEVEL: str = 'INFO'

    HOST: str = '0.0.0.0'
    PORT: int = 3000

    # Shared secrets presented by the order webhook and the device channel
    ORDER_WEBHOOK_SECRET: str = 'your_order_webhook_secret_here'
    DEVICE_SECRET: str = 'your_device_secret_here'

    # Storage
    SETTINGS_FILE: str = 'data/settings.json'
    USERS_FILE: str = 'data/users.json'

    # Relay channels and timing
    RELAY_IDS: List[str] = ["1", "2", "3", "4"]
    TICK_INTERVAL_MS: int = 100
    TEST_DURATION_MS: int = 500
    PING_INTERVAL_S: float = 30.0

    @property
    def settings_path(self) -> Path:
        """Get the settings file path as a Path object."""
        return Path(self.SETTINGS_FILE)

    @property
    def users_path(self) -> Path:
        """Get the users file path as a Path object."""
        return Path(self.USERS_FILE)

    model_config = SettingsConfigDict(
        env_file=str(get_env_path()),
        env_file_encoding='utf-8',
        extra='ignore',
        # Allow environment variables to override values in the env file
        env_nested_delimiter='__',
        validate_assignment=True,
    )

# Create a singleton instance
env = EnvSettings()
