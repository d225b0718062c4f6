from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(Path.cwd() / ".env"),
        extra="ignore",
        populate_by_name=True,
    )
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")

    # Seconds between heartbeat sweeps; also used for transport-level pings
    heartbeat_interval: float = Field(default=30.0, gt=0, alias="HEARTBEAT_INTERVAL")
    autosave_interval: float = Field(default=300.0, gt=0, alias="AUTOSAVE_INTERVAL")
    send_timeout: float = Field(default=5.0, ge=0, alias="SEND_TIMEOUT")

    state_file: str = Field(default="game_state.json", alias="STATE_FILE")
    static_dir: str = Field(default=".", alias="STATIC_DIR")

    team1_default_name: str = Field(default="Red Team", min_length=1, alias="TEAM1_NAME")
    team2_default_name: str = Field(default="Blue Team", min_length=1, alias="TEAM2_NAME")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_allow_origins: list[str] = Field(default=["*"], alias="CORS_ALLOW_ORIGINS")


@lru_cache
def get_settings() -> Settings:
    return Settings()
