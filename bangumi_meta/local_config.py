"""Per-folder ``bangumi.ini`` overrides."""

import configparser
import logging
from dataclasses import dataclass
from pathlib import Path

from .models import EpisodeType

logger = logging.getLogger(__name__)

LOCAL_CONFIG_FILE = "bangumi.ini"

_SECTION = "bangumi"

_EPISODE_TYPES = {
    "normal": EpisodeType.NORMAL,
    "special": EpisodeType.SPECIAL,
    "sp": EpisodeType.SPECIAL,
    "op": EpisodeType.OPENING,
    "ed": EpisodeType.ENDING,
    "other": EpisodeType.OTHER,
}


@dataclass
class LocalOverride:
    """Overrides read from the nearest ``bangumi.ini``.

    ``id`` of 0 means no override.
    """

    id: int = 0
    offset: int = 0
    type: EpisodeType | None = None

    @classmethod
    def for_path(cls, path: str | Path | None) -> "LocalOverride":
        """Read the override file closest to a media path.

        The item's own folder is checked first, then each ancestor. A file
        path starts at its containing folder.
        """
        if not path:
            return cls()

        path = Path(path)
        folder = path if path.is_dir() else path.parent
        for candidate in [folder, *folder.parents]:
            config_file = candidate / LOCAL_CONFIG_FILE
            if config_file.is_file():
                return cls.from_file(config_file)

        return cls()

    @classmethod
    def from_file(cls, config_file: Path) -> "LocalOverride":
        """Parse one override file, ignoring malformed values."""
        parser = configparser.ConfigParser()
        try:
            # Files carry bare key=value lines without a section header
            parser.read_string(
                f"[{_SECTION}]\n" + config_file.read_text(encoding="utf-8")
            )
        except (OSError, configparser.Error, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {config_file}: {e}")
            return cls()

        section = parser[_SECTION]
        override = cls()

        try:
            override.id = section.getint("id", fallback=0)
        except ValueError:
            logger.warning(f"Invalid id in {config_file}: {section.get('id')}")

        try:
            override.offset = section.getint("offset", fallback=0)
        except ValueError:
            logger.warning(f"Invalid offset in {config_file}: {section.get('offset')}")

        episode_type = section.get("type", fallback="").strip().lower()
        if episode_type:
            override.type = _EPISODE_TYPES.get(episode_type)
            if override.type is None:
                logger.warning(f"Invalid type in {config_file}: {episode_type}")

        return override
