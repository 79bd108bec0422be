from datetime import datetime, timedelta, timezone

from wellbeing.models import JournalEntry, JournalSearchFilters
from wellbeing.search import search_entries

BASE = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_entry(entry_id, title="", content="", tags=None, mood=None, favorite=False, days=0):
    when = BASE + timedelta(days=days)
    return JournalEntry(
        id=entry_id,
        user_id="u1",
        title=title,
        content=content,
        date=when,
        tags=tags or [],
        mood=mood,
        is_favorite=favorite,
        word_count=len(content.split()),
        created_at=when,
        updated_at=when,
    )


ENTRIES = [
    make_entry("e1", "Morning run", "Felt great after 5k", tags=["a", "b"], mood="happy", days=0),
    make_entry("e2", "Work stress", "Deadline moved up", tags=["a"], mood="anxious", favorite=True, days=1),
    make_entry("e3", "Family dinner", "Grandma's recipe", tags=["b", "family"], mood="happy", days=2),
    make_entry("e4", "Quiet day", "Nothing much", tags=[], mood=None, favorite=True, days=3),
]


def ids(entries):
    return [e.id for e in entries]


def test_empty_filter_returns_everything_in_order():
    assert ids(search_entries(ENTRIES, JournalSearchFilters())) == ["e1", "e2", "e3", "e4"]


def test_tags_require_all_listed():
    assert ids(search_entries(ENTRIES, JournalSearchFilters(tags=["a", "b"]))) == ["e1"]
    assert ids(search_entries(ENTRIES, JournalSearchFilters(tags=["a"]))) == ["e1", "e2"]


def test_empty_tag_list_is_no_constraint():
    assert len(search_entries(ENTRIES, JournalSearchFilters(tags=[]))) == 4


def test_search_text_matches_title_or_content_case_insensitively():
    assert ids(search_entries(ENTRIES, JournalSearchFilters(search_text="STRESS"))) == ["e2"]
    assert ids(search_entries(ENTRIES, JournalSearchFilters(search_text="recipe"))) == ["e3"]
    assert ids(search_entries(ENTRIES, JournalSearchFilters(search_text="zzz"))) == []


def test_mood_is_exact_match():
    assert ids(search_entries(ENTRIES, JournalSearchFilters(mood="happy"))) == ["e1", "e3"]


def test_date_bounds_are_inclusive():
    filters = JournalSearchFilters(date_from=BASE + timedelta(days=1), date_to=BASE + timedelta(days=2))
    assert ids(search_entries(ENTRIES, filters)) == ["e2", "e3"]


def test_favorites_only():
    assert ids(search_entries(ENTRIES, JournalSearchFilters(favorites_only=True))) == ["e2", "e4"]


def test_filters_combine_with_and():
    filters = JournalSearchFilters(tags=["b"], mood="happy", date_from=BASE + timedelta(days=1))
    assert ids(search_entries(ENTRIES, filters)) == ["e3"]

    filters = JournalSearchFilters(favorites_only=True, search_text="dinner")
    assert ids(search_entries(ENTRIES, filters)) == []


def test_filters_accept_wire_names():
    filters = JournalSearchFilters.model_validate({"searchText": "run", "favoritesOnly": False})
    assert ids(search_entries(ENTRIES, filters)) == ["e1"]
