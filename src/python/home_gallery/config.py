"""
Configuration management for home-gallery.

Loads configuration from a YAML file and environment variables into a single
immutable ``GalleryConfig`` value that is passed to every component.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

# Default locations to search for config.yaml
CONFIG_SEARCH_PATHS = [
    Path("config.yaml"),
    Path("src/python/config.yaml"),
    Path.home() / ".home_gallery" / "config.yaml",
]

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class DatabaseConfig:
    """Configuration for the media catalogue database."""
    uri: str = "sqlite:///home_gallery.db"


@dataclass(frozen=True)
class ThumbnailConfig:
    """Configuration for thumbnail rendering."""
    edge_px: int = 400
    quality: int = 85
    hidden_dir: str = ".thumbnails"
    video_width: int = 640
    play_badge: bool = True


@dataclass(frozen=True)
class IndexerConfig:
    """Configuration for the media indexer."""
    workers: int = 4
    probe_timeout: float = 30.0
    refresh_stale_thumbnails: bool = True


@dataclass(frozen=True)
class ScheduleConfig:
    """Configuration for periodic jobs."""
    auto_index_enabled: bool = True
    auto_index_cron: str = "02:00 daily"
    notification_cron: str = "09:00 daily"


@dataclass(frozen=True)
class SlideshowConfig:
    """Configuration for slideshow sessions."""
    session_ttl_seconds: int = 3600
    max_sessions: int = 1000


@dataclass(frozen=True)
class MemoriesConfig:
    """Configuration for the memories page."""
    batch_size: int = 12


@dataclass(frozen=True)
class WebConfig:
    """Configuration for web service."""
    host: str = "0.0.0.0"
    port: int = 5100


@dataclass(frozen=True)
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT
    file: Optional[str] = None


@dataclass(frozen=True)
class GalleryConfig:
    """Main configuration class."""
    media_root: Path
    music_root: Optional[Path] = None
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    thumbnails: ThumbnailConfig = field(default_factory=ThumbnailConfig)
    indexer: IndexerConfig = field(default_factory=IndexerConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    slideshow: SlideshowConfig = field(default_factory=SlideshowConfig)
    memories: MemoriesConfig = field(default_factory=MemoriesConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        if not str(self.media_root):
            raise ValueError("Config missing 'media_root' setting.")
        if not 1 <= self.thumbnails.quality <= 100:
            raise ValueError(
                f"thumbnails.quality must be between 1 and 100, got {self.thumbnails.quality}"
            )
        if self.thumbnails.edge_px <= 0:
            raise ValueError("thumbnails.edge_px must be positive")
        if self.indexer.workers < 1:
            raise ValueError("indexer.workers must be at least 1")

    @property
    def thumbnail_root(self) -> Path:
        """Absolute path of the hidden thumbnail directory."""
        return Path(self.media_root) / self.thumbnails.hidden_dir

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GalleryConfig":
        """Create a GalleryConfig from a dictionary (e.g. parsed YAML)."""
        media_root = data.get("media_root")
        if not media_root:
            raise ValueError("Config missing 'media_root' setting.")
        music_root = data.get("music_root")

        return cls(
            media_root=Path(media_root),
            music_root=Path(music_root) if music_root else None,
            database=DatabaseConfig(**data.get("database", {})),
            thumbnails=ThumbnailConfig(**data.get("thumbnails", {})),
            indexer=IndexerConfig(**data.get("indexer", {})),
            schedule=ScheduleConfig(**data.get("schedule", {})),
            slideshow=SlideshowConfig(**data.get("slideshow", {})),
            memories=MemoriesConfig(**data.get("memories", {})),
            web=WebConfig(**data.get("web", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (paths as strings)."""
        return {
            "media_root": str(self.media_root),
            "music_root": str(self.music_root) if self.music_root else None,
            "database": vars(self.database).copy(),
            "thumbnails": vars(self.thumbnails).copy(),
            "indexer": vars(self.indexer).copy(),
            "schedule": vars(self.schedule).copy(),
            "slideshow": vars(self.slideshow).copy(),
            "memories": vars(self.memories).copy(),
            "web": vars(self.web).copy(),
            "logging": vars(self.logging).copy(),
        }


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``data`` with environment variable overrides applied."""
    data = dict(data)

    if env_root := os.getenv("HOME_GALLERY_MEDIA_ROOT"):
        data["media_root"] = env_root
    if env_music := os.getenv("HOME_GALLERY_MUSIC_ROOT"):
        data["music_root"] = env_music
    if env_uri := os.getenv("HOME_GALLERY_DB_URI"):
        data["database"] = {**data.get("database", {}), "uri": env_uri}
    if env_level := os.getenv("HOME_GALLERY_LOG_LEVEL"):
        data["logging"] = {**data.get("logging", {}), "level": env_level}

    return data


def load_config(config_path: Optional[Path] = None) -> GalleryConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Specific path to config file. If None, searches default locations.
                     When no file is found, settings come from environment variables only.

    Returns:
        GalleryConfig instance

    Raises:
        FileNotFoundError: If an explicit config_path does not exist.
        ValueError: If the resulting configuration is invalid.
    """
    path_to_load = None

    if config_path:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        path_to_load = config_path
    else:
        path_to_load = next((path for path in CONFIG_SEARCH_PATHS if path.exists()), None)

    data: Dict[str, Any] = {}
    if path_to_load:
        logger.info("Loading config from %s", path_to_load)
        with open(path_to_load, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    else:
        logger.info("No config file found, using defaults and environment")

    return GalleryConfig.from_dict(_apply_env_overrides(data))


def with_overrides(config: GalleryConfig, **changes: Any) -> GalleryConfig:
    """Return a copy of ``config`` with top-level fields replaced."""
    return replace(config, **changes)
