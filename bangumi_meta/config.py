import logging
import re
from collections.abc import Callable
from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_SP_EXCLUDE_REGEX_FULL_PATH = ""

DEFAULT_SP_EXCLUDE_REGEX_FOLDER_NAME = (
    r"\b(SPs?|Specials?|PVs?|Previews?|Scans?|menus?|Fonts?|Extras?|CDs?|bonus|Music|Subs?|Subtitles?)\b"
    "\n"
    r"(特典|NCOP|NCED)"
)

DEFAULT_SP_EXCLUDE_REGEX_FILE_NAME = r"\b(WEB予告|NCOP\d*|NCED\d*|menu|PV\d+)\b"


class TranslationPreference(str, Enum):
    ORIGINAL = "original"
    CHINESE = "chinese"


class Settings(BaseSettings):
    """Configuration settings for bangumi-meta."""

    model_config = SettingsConfigDict(env_prefix="BANGUMI_", case_sensitive=False)

    # Catalog
    base_server_url: str = Field(
        default="https://api.bgm.tv", description="Bangumi API base URL"
    )
    access_token: str = Field(
        default="", description="Optional Bangumi API access token"
    )
    request_timeout: int = Field(
        default=5000, description="Catalog request timeout in milliseconds"
    )

    # Archive
    archive_path: str = Field(
        default="bangumi/archive",
        description="Directory holding the jsonlines archive",
    )
    days_before_using_archive_data: int = Field(
        default=14,
        description="Serve archived subjects once they aired this many days ago",
    )
    rating_update_min_interval: int = Field(
        default=14,
        description="Minimum days between rating refreshes of archived subjects",
    )
    refresh_rating_when_archive_update: bool = Field(
        default=False,
        description="Ask the catalog again for archived subjects with stale ratings",
    )

    # Titles
    translation_preference: TranslationPreference = Field(
        default=TranslationPreference.CHINESE,
        description="Language used for subject and episode titles",
    )
    person_translation_preference: TranslationPreference = Field(
        default=TranslationPreference.ORIGINAL,
        description="Language used for person and character names",
    )
    use_bangumi_season_title: bool = Field(
        default=True, description="Replace season names with the Bangumi title"
    )

    # Matching
    always_get_episode_by_guessit: bool = Field(
        default=False, description="Parse episode numbers with guessit"
    )
    sort_by_fuzz_score: bool = Field(
        default=False, description="Re-rank search results by fuzzy score"
    )
    skip_nsfw: bool = Field(
        default=False, description="Never match NSFW subjects by folder name"
    )
    season_guess_max_search_count: int = Field(
        default=2, description="Sequel hops followed when guessing the next season"
    )

    # Special file detection, one pattern per line
    sp_exclude_regex_full_path: str = Field(default=DEFAULT_SP_EXCLUDE_REGEX_FULL_PATH)
    sp_exclude_regex_folder_name: str = Field(
        default=DEFAULT_SP_EXCLUDE_REGEX_FOLDER_NAME
    )
    sp_exclude_regex_file_name: str = Field(default=DEFAULT_SP_EXCLUDE_REGEX_FILE_NAME)

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    @field_validator(
        "sp_exclude_regex_full_path",
        "sp_exclude_regex_folder_name",
        "sp_exclude_regex_file_name",
    )
    @classmethod
    def _strip_blank_patterns(cls, value: str) -> str:
        return check_regexes(value)


def check_regexes(regexes: str | None) -> str:
    """Trim every pattern line and drop the empty ones."""
    if not regexes or not regexes.strip():
        return ""

    return "\n".join(line.strip() for line in regexes.split("\n") if line.strip())


def match_sp_exclude_regexes(
    patterns: str,
    text: str,
    failed_callback: Callable[[str, Exception], None] | None = None,
) -> bool:
    """Check whether any special-file pattern matches the text.

    Args:
        patterns: Newline separated regular expressions
        text: Text to match against (path, folder name or file name)
        failed_callback: Called with the pattern and error for invalid patterns

    Returns:
        True if one of the patterns matches
    """
    for pattern in patterns.split("\n"):
        if not pattern:
            continue

        try:
            if re.search(pattern, text, re.IGNORECASE):
                return True
        except re.error as e:
            if failed_callback:
                failed_callback(pattern, e)
            else:
                logger.warning(f"Invalid special file pattern '{pattern}': {e}")

    return False
