"""
Settings management for Riffbox.

This module provides classes and functions for managing application settings
using Pydantic for validation and type checking.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator, ConfigDict

from riffbox.utils.logger import get_logger
from riffbox.utils.paths import get_config_dir, get_data_dir, get_default_download_dir, get_bundled_ffmpeg_dir


class AudioFormat(str, Enum):
    """Audio containers the downloader can be asked to produce."""
    MP3 = "mp3"
    M4A = "m4a"
    OPUS = "opus"
    WAV = "wav"


class Settings(BaseModel):
    """
    Application settings model.

    This class defines all the settings available in the application,
    with default values and validation.
    """
    # Storage
    download_path: Path = Field(default_factory=get_default_download_dir)
    data_path: Path = Field(default_factory=get_data_dir)

    # External tools
    ytdlp_binary: str = "yt-dlp"
    ffmpeg_location: Path = Field(default_factory=get_bundled_ffmpeg_dir)

    # Download behaviour
    audio_format: AudioFormat = AudioFormat.MP3
    search_suffix: str = "audio"
    max_filename_length: int = 200
    max_concurrent_downloads: Optional[int] = None  # None: no limit

    model_config = ConfigDict(
        validate_assignment=True,
        arbitrary_types_allowed=True
    )

    @field_validator("download_path", "data_path", mode='before')
    def validate_directory(cls, v):
        """Validate and convert a directory setting to a Path object."""
        if isinstance(v, str):
            path = Path(v).expanduser()
        elif isinstance(v, Path):
            path = v
        else:
            raise ValueError(f"Invalid path type: {type(v)}")

        path.mkdir(parents=True, exist_ok=True)
        return path

    @field_validator("ffmpeg_location", mode='before')
    def validate_ffmpeg_location(cls, v):
        """Convert the ffmpeg location to a Path; it does not have to exist yet."""
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @field_validator("max_filename_length")
    def validate_max_filename_length(cls, v: int):
        if not 16 <= v <= 240:
            raise ValueError("max_filename_length must be between 16 and 240")
        return v

    @field_validator("max_concurrent_downloads")
    def validate_max_concurrent_downloads(cls, v: Optional[int]):
        if v is not None and v < 1:
            raise ValueError("max_concurrent_downloads must be positive or null")
        return v

    @property
    def playlists_file(self) -> Path:
        return self.data_path / "playlists.json"

    @property
    def downloads_file(self) -> Path:
        return self.data_path / "downloads.json"

    @property
    def covers_dir(self) -> Path:
        return self.data_path / "covers"


def load_settings(config_path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load settings from a configuration file.

    Args:
        config_path: Optional path to a configuration file

    Returns:
        Settings object with loaded values
    """
    if config_path:
        config_file = Path(config_path)
    else:
        config_file = get_config_dir() / "settings.json"

    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                config_data = json.load(f)
            return Settings(**config_data)
        except (json.JSONDecodeError, ValueError, TypeError) as e:
            get_logger(__name__).error(f"Error loading settings from {config_file}: {e}")
            return Settings()

    return Settings()


def save_settings(settings: Settings, config_path: Optional[Union[str, Path]] = None) -> None:
    """
    Save settings to a configuration file.

    Args:
        settings: Settings object to save
        config_path: Optional path to a configuration file
    """
    if config_path:
        config_file = Path(config_path)
    else:
        config_file = get_config_dir() / "settings.json"

    config_file.parent.mkdir(parents=True, exist_ok=True)

    with open(config_file, "w", encoding="utf-8") as f:
        json.dump(settings.model_dump(mode='json'), f, indent=2)
