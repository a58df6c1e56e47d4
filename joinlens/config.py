import logging
import os

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    logger = logging.getLogger()
    logger.setLevel(log_level.upper())

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level.upper())

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)


def load_config(config_file_name: str) -> dict[str, dict]:
    current_dir = os.path.dirname(__file__)
    profiles_path = os.path.join(current_dir, config_file_name)
    with open(profiles_path) as profiles_file:
        return yaml.safe_load(profiles_file) or {}


class BasicAuthSettings(BaseSettings):
    username: str
    password: str


class ServerSettings(BaseSettings):
    host: str = "127.0.0.1"
    port: int = 8998
    model_config = SettingsConfigDict(env_prefix="SRV_")


class JoinLensSettings(BaseSettings):
    auth: BasicAuthSettings
    server: ServerSettings

    @classmethod
    def from_yaml(cls, file_name: str) -> "JoinLensSettings":
        cfg = load_config(file_name)

        basic_auth_config = cfg.get("auth", {})
        server_config = cfg.get("server", {})

        return cls(
            auth=BasicAuthSettings(
                username=basic_auth_config.get("username", "no_username"),
                password=basic_auth_config.get("password", "no_password"),
            ),
            server=ServerSettings(
                host=server_config.get("host", "127.0.0.1"),
                port=server_config.get("port", 8998),
            ),
        )


joinlens_config_path = os.getenv("JOINLENS_CONFIG_PATH") or "joinlens_config_local.yaml"
joinlens_log_level = os.getenv("JOINLENS_LOG_LEVEL") or "INFO"
setup_logging(joinlens_log_level)
joinlens_settings = JoinLensSettings.from_yaml(joinlens_config_path)
logger.info(
    "joinlens settings loaded from %s (server %s:%s)",
    joinlens_config_path,
    joinlens_settings.server.host,
    joinlens_settings.server.port,
)
