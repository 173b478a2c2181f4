"""
Configuration loading.

Reads the JSON configuration file (platform, drivers, rallies, cache and
snapshot locations) and validates it into dataclasses. Directories are passed
explicitly to the components that use them; nothing is read from the
environment.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from typing_extensions import NotRequired, TypedDict

from .exceptions import ConfigurationError, ValidationError
from .fetchers.http_fetcher import DEFAULT_MAX_CONNECTIONS, DEFAULT_TIMEOUT
from .leaderboard_api import DEFAULT_BASE_URL
from .logging_config import get_logger
from .models import Driver, Rally, Stage

# Module-level logger
logger = get_logger("config")

IdentityMode = Literal["world-rank", "display-name"]


class StageSettings(TypedDict):
    area: str
    stage_number: int
    direction: NotRequired[str]
    weather: str
    group: str


class RallySettings(TypedDict):
    title: str
    stages: list[StageSettings]


class DriverSettings(TypedDict):
    name: str
    account_id: str | int


class CacheSettings(TypedDict):
    enabled: bool
    directory: NotRequired[str]


class ConfigFile(TypedDict):
    """Type definition for the configuration file."""

    platform: str
    drivers: list[DriverSettings]
    rallies: list[RallySettings]
    base_url: NotRequired[str]
    cache: NotRequired[CacheSettings]
    snapshot_dir: NotRequired[str]
    max_connections: NotRequired[int]
    timeout_seconds: NotRequired[float]
    identity: NotRequired[IdentityMode]


_config_adapter = TypeAdapter(ConfigFile)


@dataclass
class AppConfig:
    """Validated configuration of one fetch cycle."""

    platform: str
    drivers: list[Driver]
    rallies: list[Rally]
    base_url: str = DEFAULT_BASE_URL
    cache_enabled: bool = False
    cache_dir: Path = field(default_factory=lambda: Path(".cache"))
    snapshot_dir: Path = field(default_factory=lambda: Path("snapshots"))
    max_connections: int = DEFAULT_MAX_CONNECTIONS
    timeout_seconds: float = DEFAULT_TIMEOUT
    identity: IdentityMode = "world-rank"

    def __post_init__(self):
        """Validate configuration."""
        if not self.platform:
            raise ConfigurationError("platform cannot be empty")
        if not self.drivers:
            raise ConfigurationError("at least one driver must be configured")
        names = [d.name for d in self.drivers]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"duplicate driver names: {duplicates}")
        if not self.rallies:
            raise ConfigurationError("at least one rally must be configured")
        titles = [r.title for r in self.rallies]
        duplicates = sorted({t for t in titles if titles.count(t) > 1})
        if duplicates:
            raise ConfigurationError(f"duplicate rally titles: {duplicates}")
        if self.max_connections <= 0:
            raise ConfigurationError(f"max_connections must be positive, got {self.max_connections}")
        if self.timeout_seconds <= 0:
            raise ConfigurationError(f"timeout_seconds must be positive, got {self.timeout_seconds}")

    @property
    def driver_names(self) -> list[str]:
        return [d.name for d in self.drivers]

    def stages(self) -> list[Stage]:
        """Distinct stages of every rally, in first-seen order."""
        return list(dict.fromkeys(stage for rally in self.rallies for stage in rally.stages))


def parse_config(data: object, base_dir: Path = Path(".")) -> AppConfig:
    """
    Validate decoded configuration data.

    Args:
        data: Decoded JSON configuration
        base_dir: Directory that relative paths are resolved against

    Raises:
        ConfigurationError: If the data is missing fields or has invalid values
    """
    try:
        settings = _config_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e

    try:
        drivers = [Driver(name=d["name"], account_id=str(d["account_id"])) for d in settings["drivers"]]
        rallies = [
            Rally(
                title=r["title"],
                stages=tuple(
                    Stage(
                        area=s["area"],
                        stage_number=s["stage_number"],
                        direction=s.get("direction", "forward"),
                        weather=s["weather"],
                        group=s["group"],
                    )
                    for s in r["stages"]
                ),
            )
            for r in settings["rallies"]
        ]
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e

    cache = settings.get("cache", {"enabled": False})
    return AppConfig(
        platform=settings["platform"],
        drivers=drivers,
        rallies=rallies,
        base_url=settings.get("base_url", DEFAULT_BASE_URL),
        cache_enabled=cache["enabled"],
        cache_dir=base_dir / cache.get("directory", ".cache"),
        snapshot_dir=base_dir / settings.get("snapshot_dir", "snapshots"),
        max_connections=settings.get("max_connections", DEFAULT_MAX_CONNECTIONS),
        timeout_seconds=settings.get("timeout_seconds", DEFAULT_TIMEOUT),
        identity=settings.get("identity", "world-rank"),
    )


def load_config(path: Path) -> AppConfig:
    """
    Load and validate a configuration file.

    Raises:
        ConfigurationError: If the file is unreadable, not JSON, or invalid
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"cannot read configuration {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"configuration {path} is not valid JSON: {e}") from e

    config = parse_config(data, base_dir=path.parent)
    logger.info(
        f"Loaded configuration from {path}: {len(config.drivers)} drivers, {len(config.rallies)} rallies"
    )
    return config
