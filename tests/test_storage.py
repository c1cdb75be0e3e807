"""Task file, calendar cache and note repository persistence."""

import json
from datetime import date

import pytest

from deskdash.db.calendar_cache import load_cache, month_key, save_cache
from deskdash.db.notes import (
    NoteRepository,
    display_title,
    sanitize_filename,
    seed_default_notes,
)
from deskdash.db.tasks import DEFAULT_TASKS, Task, load_tasks, save_tasks
from tests import fake_data


class TestTasks:
    def test_missing_file_seeds_default_tasks(self, tmp_path):
        path = tmp_path / "todo-list.json"

        tasks = load_tasks(path)

        assert [t.title for t in tasks] == DEFAULT_TASKS
        assert not any(t.done for t in tasks)
        assert path.exists()

    def test_round_trip(self, tmp_path):
        path = tmp_path / "todo-list.json"
        tasks = fake_data.fake_tasks()
        save_tasks(path, tasks)
        assert load_tasks(path) == tasks

    def test_file_format(self, tmp_path):
        path = tmp_path / "todo-list.json"
        save_tasks(path, [Task(title="Buy milk", done=True)])
        assert path.read_text() == '[{"title":"Buy milk","description":"","done":true}]'

    @pytest.mark.parametrize("content", ["{broken", '{"title": "x"}'])
    def test_corrupt_file_loads_empty(self, tmp_path, content):
        path = tmp_path / "todo-list.json"
        _ = path.write_text(content)
        assert load_tasks(path) == []

    def test_missing_fields_get_defaults(self, tmp_path):
        path = tmp_path / "todo-list.json"
        _ = path.write_text('[{"title": "Water plants"}]')
        assert load_tasks(path) == [Task(title="Water plants", description="", done=False)]

    def test_display_text(self):
        assert Task(title="Call mum").display_text() == "[ ] Call mum"
        assert Task(title="Call mum", done=True).display_text() == "[x] Call mum"


class TestCalendarCache:
    def test_month_key(self):
        assert month_key(date(2025, 11, 30)) == "2025-11"
        assert month_key(date(987, 1, 1)) == "0987-01"

    def test_missing_file_is_empty(self, tmp_path):
        assert load_cache(tmp_path / "calendar_cache.json") == {}

    def test_round_trip_keeps_empty_months(self, tmp_path):
        path = tmp_path / "calendar_cache.json"
        cache = {"2025-11": fake_data.fake_events(date(2025, 11, 1)), "2025-12": []}
        save_cache(path, cache)
        assert load_cache(path) == cache

    @pytest.mark.parametrize("content", ["not json at all", "[]", '"2025-11"'])
    def test_corrupt_file_is_replaced_by_empty_cache(self, tmp_path, content):
        path = tmp_path / "calendar_cache.json"
        _ = path.write_text(content)
        assert load_cache(path) == {}

    def test_malformed_entries_are_dropped(self, tmp_path):
        path = tmp_path / "calendar_cache.json"
        _ = path.write_text(
            json.dumps({"2025-11": [{"summary": "ok"}, "junk"], "2025-12": "junk"})
        )
        assert load_cache(path) == {"2025-11": [{"summary": "ok"}]}


class TestNoteNames:
    def test_sanitize_spaces_punctuation_and_unicode(self):
        stem = sanitize_filename("Café plans: 2025 (draft)!")
        assert stem == "Caf-plans-2025-draft"
        assert all(c.isascii() and (c.isalnum() or c == "-") for c in stem)

    def test_sanitize_empty_result(self):
        assert sanitize_filename("???") == "untitled-note"
        assert sanitize_filename("") == "untitled-note"

    def test_display_title_restores_spaces(self):
        assert display_title(sanitize_filename("Meeting notes") + ".md") == "Meeting notes"

    def test_display_title_strips_numeric_prefix(self):
        assert display_title("01-Welcome-to-DeskDash.md") == "Welcome to DeskDash"


class TestNoteRepository:
    def test_create_writes_starter_document(self, repo):
        ref = repo.create("Weekly review")

        assert ref.path.name == "Weekly-review.md"
        assert ref.title == "Weekly review"
        assert repo.read(ref) == "# Weekly review\n\n"

    def test_create_never_overwrites(self, repo):
        first = repo.create("Ideas")
        repo.write(first, "keep me")

        second = repo.create("Ideas")
        third = repo.create("Ideas")

        assert second.path.name == "Ideas-2.md"
        assert third.path.name == "Ideas-3.md"
        assert repo.read(first) == "keep me"

    def test_list_is_sorted_and_ignores_other_files(self, repo):
        _ = repo.create("Zebra")
        _ = repo.create("Apple")
        _ = (repo.notes_dir / "scratch.txt").write_text("not a note")

        assert [n.title for n in repo.list()] == ["Apple", "Zebra"]

    def test_delete_removes_file(self, repo):
        ref = repo.create("Temporary")
        repo.delete(ref)
        assert not ref.path.exists()
        assert repo.list() == []

    def test_list_of_missing_directory_is_empty(self, tmp_path):
        assert NoteRepository(tmp_path / "nowhere").list() == []


class TestSeeding:
    def test_empty_store_gets_two_seed_notes(self, repo):
        assert seed_default_notes(repo, already_created=False) is True

        titles = [n.title for n in repo.list()]
        assert titles == ["Welcome to DeskDash", "Keybindings for DeskDash"]
        assert len(titles) == 2

    def test_flag_prevents_reseeding(self, repo):
        assert seed_default_notes(repo, already_created=True) is False
        assert repo.list() == []

    def test_existing_notes_prevent_seeding(self, repo):
        _ = repo.create("Mine")
        assert seed_default_notes(repo, already_created=False) is False
        assert [n.title for n in repo.list()] == ["Mine"]
