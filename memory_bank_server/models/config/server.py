"""Server and security policy configuration models."""

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".memory-bank" / "config.yaml"


class PolicyConfig(BaseModel):
    """Security policy applied by the gate. Fixed for the life of a server."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_content_size: int = Field(default=1024 * 1024, gt=0)
    allowed_path_extensions: frozenset[str] = frozenset({".md", ".txt", ".json"})
    allowed_base_paths: frozenset[str] = frozenset()
    sanitization_enabled: bool = True

    @field_validator("allowed_path_extensions")
    @classmethod
    def normalize_extensions(cls, v):
        """Store extensions lower-cased with a leading dot."""
        normalized = set()
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.add(ext if ext.startswith(".") else f".{ext}")
        return frozenset(normalized)


class ServerSettings(BaseSettings):
    """Main server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MEMORY_BANK_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = Field(default=7331, ge=1024, le=65535)
    workspace_root: Path = Field(default_factory=Path.cwd)
    memory_bank_dirname: str = "memory-bank"
    platform_name: str = "python"

    allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"]
    )
    allow_missing_origin: bool = True
    max_connections: int = Field(default=20, ge=1)
    idle_timeout: float = Field(default=300.0, gt=0)
    tool_timeout: float = Field(default=30.0, gt=0)
    event_queue_size: int = Field(default=100, ge=1)

    log_level: str = "INFO"
    log_file: Path | None = None

    policy: PolicyConfig = Field(default_factory=PolicyConfig)

    @field_validator("host")
    @classmethod
    def validate_host(cls, v):
        """Validate host is not empty."""
        if not v or not v.strip():
            raise ValueError("Host cannot be empty")
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def memory_bank_dir(self) -> Path:
        return self.workspace_root / self.memory_bank_dirname

    @classmethod
    def load_from_file(cls, config_path: Path | None = None) -> "ServerSettings":
        """Load settings from a YAML file, falling back to defaults.

        Environment variables still apply on top of the file values for any
        field the file leaves out.
        """
        import yaml

        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        if not config_path.exists():
            return cls()

        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}

            if "policy" in config_data:
                config_data["policy"] = PolicyConfig.model_validate(
                    config_data["policy"]
                )

            return cls(**config_data)
        except Exception as e:
            logger.warning(f"Ignoring invalid config file {config_path}: {e}")
            return cls()

    def save_to_file(self, config_path: Path | None = None) -> None:
        """Save settings to a YAML file."""
        import yaml

        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        config_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.model_dump(mode="json")
        # YAML has no set type
        policy = config_dict.get("policy", {})
        for field in ("allowed_path_extensions", "allowed_base_paths"):
            if field in policy:
                policy[field] = sorted(policy[field])

        with open(config_path, "w") as f:
            yaml.safe_dump(config_dict, f, default_flow_style=False)


__all__ = ["DEFAULT_CONFIG_PATH", "PolicyConfig", "ServerSettings"]
