import logging
from pathlib import Path

from ..config import Settings
from ..local_config import LocalOverride
from ..models import EpisodeType
from .assembler import (
    EpisodeMetadata,
    MetadataResult,
    apply_classification,
    assemble_episode,
    fill_from_subject,
)
from .classifier import classify_episode, is_special_file, place_special
from .episode_parser import EpisodeParserContext, create_episode_parser
from .library import EpisodeInfo, Library

logger = logging.getLogger(__name__)


class EpisodeProvider:
    """Episode metadata from Bangumi.

    Like the season provider, failures end in an empty result.
    """

    def __init__(self, api, library: Library, settings: Settings):
        self.api = api
        self.library = library
        self.settings = settings

    async def get_metadata(self, info: EpisodeInfo) -> MetadataResult:
        if not info.path:
            return MetadataResult()

        try:
            return await self._get_metadata(info)
        except Exception as e:
            logger.error(f"metadata for {info.path} error: {e}", exc_info=True)
            return MetadataResult()

    async def _get_metadata(self, info: EpisodeInfo) -> MetadataResult:
        local_override = LocalOverride.for_path(info.path)
        parent = self.library.find_parent(info.path)
        if local_override.type is not None:
            special_file = local_override.type == EpisodeType.SPECIAL
        else:
            special_file = is_special_file(info.path, self.settings, parent)

        context = EpisodeParserContext(
            api=self.api,
            info=info,
            settings=self.settings,
            local_override=local_override,
            parent=parent,
            special_file=special_file,
        )
        parser = create_episode_parser(context)

        # A failed lookup still lets known specials leave the regular season
        episode = None
        try:
            episode = await parser.get_episode()
            logger.info(f"metadata for {Path(info.path).name}: {episode}")
        except Exception as e:
            logger.error(f"metadata for {info.path} error: {e}")

        if episode is None:
            if special_file:
                return MetadataResult(item=EpisodeMetadata(parent_index_number=0))
            return MetadataResult()

        metadata = assemble_episode(episode, local_override, self.settings)
        classification = classify_episode(
            episode, special_file, info.parent_index_number, parent
        )

        if not classification.complete:
            subject = await self.api.get_subject(episode.subject_id)
            if subject is not None:
                fill_from_subject(metadata, subject, self.settings)
                classification = place_special(
                    classification, episode, subject, parent
                )

        apply_classification(metadata, classification)
        return MetadataResult(item=metadata)
