from pathlib import Path

from ..models import Character, Episode, Person, Subject
from .store import ArchiveStore, RelationStore


class ArchiveData:
    """All archive stores living under one directory."""

    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path)

        self.subject = ArchiveStore(self.base_path, "subject.jsonlines", Subject)
        self.episode = ArchiveStore(self.base_path, "episode.jsonlines", Episode)
        self.person = ArchiveStore(self.base_path, "person.jsonlines", Person)
        self.character = ArchiveStore(
            self.base_path, "character.jsonlines", Character
        )

        self.subject_relations = RelationStore(
            self.base_path, "subject_relations.jsonlines"
        )
        self.subject_episodes = RelationStore(
            self.base_path, "subject_episodes.jsonlines"
        )
        self.subject_persons = RelationStore(
            self.base_path, "subject_persons.jsonlines"
        )
        self.subject_characters = RelationStore(
            self.base_path, "subject_characters.jsonlines"
        )

    @property
    def stores(self) -> list[ArchiveStore]:
        return [self.character, self.subject, self.episode, self.person]
