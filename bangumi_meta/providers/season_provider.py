import logging

from ..config import Settings
from ..local_config import LocalOverride
from .assembler import MetadataResult, assemble_people, assemble_season
from .library import Library, SeasonInfo
from .resolver import IdentityResolver

logger = logging.getLogger(__name__)


class SeasonProvider:
    """Season metadata from Bangumi.

    Failures never escape: the library always gets a result, empty when the
    season could not be matched.
    """

    def __init__(self, api, library: Library, settings: Settings):
        self.api = api
        self.library = library
        self.settings = settings
        self.resolver = IdentityResolver(api, settings)

    async def get_metadata(self, info: SeasonInfo) -> MetadataResult:
        if not info.path:
            return MetadataResult()

        try:
            return await self._get_metadata(info)
        except Exception as e:
            logger.error(f"metadata for {info.path} error: {e}", exc_info=True)
            return MetadataResult()

    async def _get_metadata(self, info: SeasonInfo) -> MetadataResult:
        local_override = LocalOverride.for_path(info.path)
        series = self.library.find_series(info.path)

        resolution = await self.resolver.resolve_season_id(info, local_override, series)
        if not resolution.resolved:
            logger.info(f"No Bangumi subject found for {info.path}")
            return MetadataResult()

        subject = resolution.subject
        if subject is None:
            subject = await self.api.get_subject(resolution.subject_id)
        if subject is None:
            logger.info(f"Bangumi subject #{resolution.subject_id} not found")
            return MetadataResult()

        logger.info(
            f"Season {info.path} matched {subject.name} (#{subject.id}) "
            f"by {resolution.method}"
        )
        self.library.remember_season(info.path, subject.id)

        persons = await self.api.get_subject_persons(subject.id)
        characters = await self.api.get_subject_characters(subject.id)

        return MetadataResult(
            item=assemble_season(subject, self.settings),
            people=assemble_people(persons, characters, self.settings),
        )
