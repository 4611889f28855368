"""Tests for the jsonlines archive stores."""

import json
import threading
from pathlib import Path

from conftest import make_subject

from bangumi_meta.archive.store import ArchiveStore, RelationStore, _lock_for
from bangumi_meta.models import Subject


class TestArchiveStore:
    """Test record storage keyed by id."""

    def test_last_record_per_id_wins(self, tmp_path):
        store = ArchiveStore(tmp_path, "subject.jsonlines", Subject)
        store.append_many(
            [
                make_subject(1, "First"),
                make_subject(2, "Second"),
                make_subject(1, "First again"),
            ]
        )

        records = store.load_all()

        assert [r.id for r in records] == [1, 2]
        assert records[0].name == "First again"
        assert store.get(1).name == "First again"

    def test_get_missing(self, tmp_path):
        store = ArchiveStore(tmp_path, "subject.jsonlines", Subject)
        assert store.get(1) is None
        assert store.load_all() == []

    def test_creates_directory(self, tmp_path):
        store = ArchiveStore(tmp_path / "nested" / "dir", "subject.jsonlines", Subject)
        store.append(make_subject(1))
        assert store.path.exists()

    def test_unicode_is_kept_readable(self, tmp_path):
        store = ArchiveStore(tmp_path, "subject.jsonlines", Subject)
        store.append(make_subject(1, name_cn="进击的巨人"))

        assert "进击的巨人" in store.path.read_text(encoding="utf-8")
        assert store.get(1).name_cn == "进击的巨人"

    def test_truncated_last_line_is_skipped(self, tmp_path):
        store = ArchiveStore(tmp_path, "subject.jsonlines", Subject)
        store.append(make_subject(1))
        with open(store.path, "a", encoding="utf-8") as f:
            f.write('{"id": 2, "name": "Half wr')

        assert [r.id for r in store.load_all()] == [1]
        assert store.get(2) is None

    def test_malformed_line_is_skipped(self, tmp_path):
        store = ArchiveStore(tmp_path, "subject.jsonlines", Subject)
        store.append(make_subject(1))
        with open(store.path, "a", encoding="utf-8") as f:
            f.write("not json\n")
            f.write(json.dumps({"name": "no id"}) + "\n")
        store.append(make_subject(2))

        assert [r.id for r in store.load_all()] == [1, 2]


class TestRelationStore:
    """Test relation files and their index."""

    def test_related_ids(self, tmp_path):
        relations = RelationStore(tmp_path, "subject_relations.jsonlines")
        relations.link(1, 2, "续集")
        relations.link_many(1, [(3, "前传"), (4, "续集")])

        assert relations.related_ids(1) == {2, 3, 4}
        assert relations.related_ids(1, "续集") == {2, 4}
        assert relations.related_ids(99) == set()

    def test_index_survives_reload(self, tmp_path):
        RelationStore(tmp_path, "subject_persons.jsonlines").link(1, 10, "导演")

        relations = RelationStore(tmp_path, "subject_persons.jsonlines")

        [record] = relations.relations(1)
        assert record.related_id == 10
        assert record.relation == "导演"

    def test_index_updated_by_links(self, tmp_path):
        relations = RelationStore(tmp_path, "subject_episodes.jsonlines")
        assert relations.related_ids(1) == set()

        relations.link(1, 100)

        assert relations.related_ids(1) == {100}

    def test_one_id_with_several_roles(self, tmp_path):
        relations = RelationStore(tmp_path, "subject_persons.jsonlines")
        relations.link_many(1, [(10, "导演"), (10, "脚本")])
        relations.link(1, 10, "导演")

        reloaded = RelationStore(tmp_path, "subject_persons.jsonlines")
        roles = sorted(r.relation for r in reloaded.relations(1))

        assert roles == ["导演", "脚本"]
        assert sorted(r.relation for r in relations.relations(1)) == roles
        assert reloaded.related_ids(1) == {10}


class TestConcurrentAppends:
    """Test writers sharing one archive file."""

    def test_threads_never_interleave_lines(self, tmp_path):
        store = ArchiveStore(tmp_path, "subject.jsonlines", Subject)
        batches = [
            [make_subject(writer * 100 + i, "x" * 2000) for i in range(50)]
            for writer in range(8)
        ]

        threads = [
            threading.Thread(target=store.append_many, args=(batch,))
            for batch in batches
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        lines = store.path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 400
        assert all(json.loads(line)["name"] == "x" * 2000 for line in lines)
        assert {r.id for r in store.load_all()} == {
            s.id for batch in batches for s in batch
        }

    def test_same_file_shares_one_lock(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        relative = Path("archive") / "subject.jsonlines"

        assert _lock_for(relative) is _lock_for(tmp_path / relative)
