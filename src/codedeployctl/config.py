"""Configuration management for codedeployctl using Pydantic."""

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from codedeployctl.clients.aws import session_duration_seconds
from codedeployctl.core.exceptions import ConfigError
from codedeployctl.core.logging import LogLevel, StructuredLogger, mask_value
from codedeployctl.core.macros import expand_macros
from codedeployctl.core.output import OutputFormat
from codedeployctl.deploy.models import (
    AmbientChain,
    AssumedRole,
    AuthMethod,
    AuthStrategy,
    DeploymentMethod,
    DeploymentTarget,
    DirectKeys,
    PollingPolicy,
    ProxySettings,
)

logger = StructuredLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 900
DEFAULT_INTERVAL_SECONDS = 15
DEFAULT_SESSION_NAME = "codedeployctl"

# Fields that may carry ${VAR} placeholders
MACRO_FIELDS = (
    "bucket",
    "prefix",
    "application_name",
    "deployment_group_name",
    "deployment_config_name",
    "subdirectory",
)


class PollingConfig(BaseModel):
    """Deployment completion polling configuration."""

    model_config = {"frozen": True}

    wait_for_completion: bool = True
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    interval_seconds: int = DEFAULT_INTERVAL_SECONDS

    @field_validator("timeout_seconds", "interval_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive number of seconds")
        return v


class ProxyConfig(BaseModel):
    """HTTP proxy configuration shared by the S3 and CodeDeploy clients."""

    model_config = {"frozen": True}

    host: str | None = None
    port: int = Field(default=0, ge=0, le=65535)

    def get_host(self) -> str | None:
        """Get proxy host from environment or config."""
        return os.environ.get("CODEDEPLOYCTL_PROXY_HOST") or self.host

    def get_port(self) -> int:
        """Get proxy port from environment or config."""
        value = os.environ.get("CODEDEPLOYCTL_PROXY_PORT")
        if value:
            try:
                return int(value)
            except ValueError:
                raise ConfigError(f"Invalid CODEDEPLOYCTL_PROXY_PORT: {value}")
        return self.port

    def to_settings(self) -> ProxySettings:
        return ProxySettings(host=self.get_host(), port=self.get_port())


class AuthConfig(BaseModel):
    """AWS authentication configuration."""

    model_config = {"frozen": True}

    method: AuthMethod = AuthMethod.DEFAULT_CHAIN
    access_key_id: str | None = None
    secret_access_key: SecretStr | None = None
    role_arn: str | None = None
    external_id: str | None = None
    session_name: str = DEFAULT_SESSION_NAME
    session_duration_seconds: int | None = Field(default=None, ge=900, le=43200)

    @model_validator(mode="after")
    def validate_method(self) -> "AuthConfig":
        if self.method == AuthMethod.ASSUME_ROLE and not self.role_arn:
            raise ValueError("role_arn is required when method is 'assume-role'")
        return self

    def get_access_key_id(self) -> str | None:
        """Get access key id from config or environment."""
        return self.access_key_id or os.environ.get("CODEDEPLOYCTL_AWS_ACCESS_KEY_ID")

    def get_secret_access_key(self) -> str | None:
        """Get secret access key from config or environment."""
        secret = self.secret_access_key.get_secret_value() if self.secret_access_key else None
        if secret == "from_env" or secret is None:
            secret = os.environ.get("CODEDEPLOYCTL_AWS_SECRET_ACCESS_KEY")
        return secret

    def get_external_id(self) -> str | None:
        """Get the assume-role external id from environment or config."""
        return os.environ.get("CODEDEPLOYCTL_EXTERNAL_ID") or self.external_id


class PublisherConfig(BaseModel):
    """Everything one deployment run needs to know."""

    model_config = {"frozen": True}

    bucket: str
    prefix: str = ""
    application_name: str
    deployment_group_name: str
    deployment_config_name: str | None = None
    region: str | None = None
    includes: str = "**"
    excludes: str = ""
    subdirectory: str = ""
    deployment_group_appspec: bool = False
    version_file_name: str | None = None
    build_name: str | None = None
    deployment_method: DeploymentMethod = DeploymentMethod.CREATE_AND_WAIT
    polling: PollingConfig = Field(default_factory=PollingConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)

    @field_validator("deployment_config_name")
    @classmethod
    def empty_config_name_is_none(cls, v: str | None) -> str | None:
        return v or None

    @field_validator("prefix")
    @classmethod
    def normalize_prefix(cls, v: str | None) -> str:
        if v is None or v == "/":
            return ""
        return v

    @field_validator("bucket", "application_name", "deployment_group_name")
    @classmethod
    def validate_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    def get_region(self) -> str | None:
        """Get AWS region from environment or config."""
        return (
            self.region
            or os.environ.get("CODEDEPLOYCTL_AWS_REGION")
            or os.environ.get("AWS_REGION")
            or os.environ.get("AWS_DEFAULT_REGION")
        )

    def expand(self, environ: Mapping[str, str]) -> "PublisherConfig":
        """Return a copy with ${VAR} placeholders substituted from environ."""
        updates = {name: expand_macros(getattr(self, name), environ) for name in MACRO_FIELDS}
        expanded = self.model_copy(update=updates)
        # Re-apply normalisation in case a macro expanded to an empty value
        if expanded.prefix == "/":
            expanded = expanded.model_copy(update={"prefix": ""})
        if not expanded.deployment_config_name:
            expanded = expanded.model_copy(update={"deployment_config_name": None})
        return expanded

    def target(self) -> DeploymentTarget:
        return DeploymentTarget(
            application_name=self.application_name,
            deployment_group_name=self.deployment_group_name,
            deployment_config_name=self.deployment_config_name,
        )

    def polling_policy(self) -> PollingPolicy:
        return PollingPolicy(
            timeout_seconds=self.polling.timeout_seconds,
            interval_seconds=self.polling.interval_seconds,
            wait_for_completion=self.polling.wait_for_completion,
        )

    def auth_strategy(self) -> AuthStrategy:
        """Select the credential strategy for this run."""
        auth = self.auth
        if auth.method == AuthMethod.ASSUME_ROLE:
            duration = auth.session_duration_seconds or session_duration_seconds(
                self.polling_policy()
            )
            return AssumedRole(
                role_arn=auth.role_arn or "",
                external_id=auth.get_external_id(),
                session_name=auth.session_name,
                duration_seconds=duration,
            )
        if auth.method == AuthMethod.ACCESS_KEYS:
            access_key_id = auth.get_access_key_id()
            secret_access_key = auth.get_secret_access_key()
            if not access_key_id and not secret_access_key:
                logger.info("No access keys configured, using the default credential chain")
                return AmbientChain()
            return DirectKeys(access_key_id or "", secret_access_key or "")
        return AmbientChain()

    def with_overrides(self, **overrides: Any) -> "PublisherConfig":
        """Return a re-validated copy with top-level fields replaced."""
        return build_publisher_config(_merge_publisher(self, overrides))

    def masked_dict(self) -> dict[str, Any]:
        """Dump for display with secrets masked."""
        data = self.model_dump(mode="json")
        if self.auth.secret_access_key is not None:
            data["auth"]["secret_access_key"] = "***"
        if data["auth"].get("access_key_id"):
            data["auth"]["access_key_id"] = mask_value(data["auth"]["access_key_id"])
        return data


class GlobalConfig(BaseSettings):
    """Global settings, overridable with CODEDEPLOYCTL_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="CODEDEPLOYCTL_", extra="ignore")

    output_format: OutputFormat = OutputFormat.TABLE
    color: str = "auto"  # auto, always, never
    verbosity: LogLevel = LogLevel.INFO

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        if v not in ("auto", "always", "never"):
            raise ValueError("color must be 'auto', 'always', or 'never'")
        return v


class CodeDeployCtlConfig(BaseModel):
    """Main configuration model."""

    model_config = {"populate_by_name": True}

    version: str = "1"
    global_settings: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    profiles: dict[str, PublisherConfig] = Field(default_factory=dict)

    def get_profile(self, name: str | None = None) -> PublisherConfig:
        """Get a profile by name, defaulting to 'default'."""
        profile_name = name or "default"
        if profile_name not in self.profiles:
            raise ConfigError(f"Profile '{profile_name}' not found")
        return self.profiles[profile_name]

    def has_profile(self, name: str | None = None) -> bool:
        return (name or "default") in self.profiles


def _format_validation_error(e: ValidationError) -> str:
    parts = []
    for error in e.errors():
        location = ".".join(str(p) for p in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)


def _merge_publisher(base: PublisherConfig, overrides: Mapping[str, Any]) -> dict[str, Any]:
    # Python-mode dump keeps SecretStr values intact
    data = base.model_dump()
    return _deep_merge(data, {k: v for k, v in overrides.items() if v is not None})


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def build_publisher_config(data: Mapping[str, Any]) -> PublisherConfig:
    """Validate a publisher configuration, raising ConfigError on failure."""
    try:
        return PublisherConfig.model_validate(dict(data))
    except ValidationError as e:
        raise ConfigError(f"Invalid deployment configuration: {_format_validation_error(e)}")


def resolve_publisher_config(
    config: CodeDeployCtlConfig,
    profile: str | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> PublisherConfig:
    """Pick a profile and layer command-line overrides on top.

    Without a matching profile, the overrides alone must describe the run.
    """
    overrides = overrides or {}
    if config.has_profile(profile):
        base = config.get_profile(profile)
        if not overrides:
            return base
        return base.with_overrides(**overrides)
    if profile:
        raise ConfigError(f"Profile '{profile}' not found")
    return build_publisher_config({k: v for k, v in overrides.items() if v is not None})


class ConfigLoader:
    """Loads and merges configuration from multiple sources."""

    CONFIG_FILENAMES = [
        "codedeployctl.yaml",
        "codedeployctl.yml",
        ".codedeployctl.yaml",
        ".codedeployctl.yml",
    ]

    def load(self, config_file: str | Path | None = None) -> CodeDeployCtlConfig:
        """Load configuration from files.

        Priority (highest to lowest):
        1. Explicitly specified config file
        2. Project config (./codedeployctl.yaml, searched upward)
        3. User config (~/.codedeployctl/config.yaml)

        Args:
            config_file: Optional explicit config file path

        Returns:
            Merged configuration
        """
        configs: list[dict[str, Any]] = []

        user_config_path = Path.home() / ".codedeployctl" / "config.yaml"
        if user_config_path.exists():
            configs.append(self._load_yaml_file(user_config_path))

        project_config = self._find_project_config()
        if project_config:
            configs.append(self._load_yaml_file(project_config))

        if config_file:
            config_path = Path(config_file)
            if not config_path.exists():
                raise ConfigError(f"Config file not found: {config_file}")
            configs.append(self._load_yaml_file(config_path))

        merged: dict[str, Any] = {}
        for config in configs:
            merged = _deep_merge(merged, config)

        try:
            global_settings = GlobalConfig(**(merged.pop("global", None) or {}))
            return CodeDeployCtlConfig(global_settings=global_settings, **merged)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {_format_validation_error(e)}")

    def _find_project_config(self) -> Path | None:
        """Find project config file in current or parent directories."""
        current = Path.cwd()

        while current != current.parent:
            for filename in self.CONFIG_FILENAMES:
                config_path = current / filename
                if config_path.exists():
                    return config_path
            current = current.parent

        return None

    def _load_yaml_file(self, path: Path) -> dict[str, Any]:
        """Load a YAML config file."""
        try:
            with open(path) as f:
                content = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}")
        if not isinstance(content, dict):
            raise ConfigError(f"Expected a mapping at the top of {path}")
        return content


def load_config(config_file: str | Path | None = None) -> CodeDeployCtlConfig:
    """Load codedeployctl configuration.

    Args:
        config_file: Optional explicit config file path

    Returns:
        Loaded configuration
    """
    return ConfigLoader().load(config_file)


def get_default_config() -> CodeDeployCtlConfig:
    """Get default configuration without loading from files."""
    return CodeDeployCtlConfig()
