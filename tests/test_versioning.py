"""
Feature: Version history of a note
  As an author
  I want each content edit to keep the previous state
  So that I can see how the note evolved

Scenario: Snapshot before an edit
  Given a note at version 1
  When a version is created before changing title and content
  Then previous_versions grows by one and version becomes 2
  And the snapshot holds the pre-edit title and content

Scenario: Edits that do not touch title or content
  Given an existing note
  When only tags or visibility change
  Then no version is cut
"""
from notehub.core.time import now_utc
from notehub.domain.notes.models import Note
from notehub.domain.notes.versioning import DEFAULT_CHANGE_DESCRIPTION, create_version, edits_content


def _note(**fields) -> Note:
    now = now_utc()
    data = dict(
        id="n" * 24,
        title="Original title",
        content="Original content",
        author_id="a" * 24,
        author_name="alice",
        created_at=now,
        updated_at=now,
    )
    data.update(fields)
    return Note(**data)


def test_create_version_snapshots_pre_edit_values():
    # Given a note at version 1
    note = _note()

    # When a version is created and then the edit is applied
    versioned = create_version(note, "Fix typos")
    edited = versioned.model_copy(update={"title": "New title", "content": "New content"})

    # Then history grows by one and version is bumped
    assert len(edited.previous_versions) == 1
    assert edited.version == 2
    snap = edited.previous_versions[0]
    # And the snapshot holds the pre-edit values
    assert snap.version == 1
    assert snap.title == "Original title"
    assert snap.content == "Original content"
    assert snap.updated_at == note.updated_at
    assert snap.change_description == "Fix typos"


def test_create_version_does_not_touch_editable_fields_or_input():
    note = _note()

    versioned = create_version(note)

    assert versioned.title == note.title
    assert versioned.content == note.content
    assert versioned.previous_versions[0].change_description == DEFAULT_CHANGE_DESCRIPTION
    assert note.previous_versions == []
    assert note.version == 1


def test_each_call_appends_one_entry():
    note = create_version(create_version(_note()))

    assert [v.version for v in note.previous_versions] == [1, 2]
    assert note.version == 3


def test_edits_content_only_for_title_or_content_changes():
    note = _note()

    assert edits_content(note, "Other title", None)
    assert edits_content(note, None, "Other content")
    assert not edits_content(note, "Original title", "Original content")
    assert not edits_content(note, None, None)
