from deutschlern.history import HISTORY_CAP, HistoryCache
from deutschlern.models import GenerationKey, Skill


def test_bucket_never_exceeds_cap_and_evicts_oldest():
    cache = HistoryCache()
    key = GenerationKey("A1", Skill.ASSESSMENT)

    for i in range(HISTORY_CAP + 5):
        cache.record(key, f"item {i}")
        assert len(cache.items(key)) <= HISTORY_CAP

    assert cache.items(key) == [f"item {i}" for i in range(5, HISTORY_CAP + 5)]


def test_blank_items_are_not_recorded():
    cache = HistoryCache()
    key = GenerationKey("A1", Skill.SPEAKING)
    cache.record(key, "")
    cache.record(key, "   ")
    assert cache.items(key) == []
    assert len(cache) == 0


def test_prompt_fragment_lists_previous_items():
    cache = HistoryCache()
    key = GenerationKey("B1", Skill.LISTENING)
    cache.record(key, "Anna kauft Brot.")
    cache.record(key, "Tom fährt Rad.")

    fragment = cache.prompt_fragment(key, "script")

    assert '"Anna kauft Brot.", "Tom fährt Rad."' in fragment
    assert "script" in fragment


def test_prompt_fragment_for_empty_bucket_asks_for_unique_item():
    cache = HistoryCache()
    assert cache.prompt_fragment(GenerationKey("A2", Skill.READING), "topic") == "Please generate a unique item."


def test_categories_have_separate_buckets():
    cache = HistoryCache()
    cache.record(GenerationKey("A1", Skill.VOCABULARY, "noun"), "Tisch")
    cache.record(GenerationKey("A1", Skill.VOCABULARY, "adjective"), "groß")

    assert cache.items(GenerationKey("A1", Skill.VOCABULARY, "noun")) == ["Tisch"]
    assert sorted(cache.bucket_ids()) == ["A1-Vocabulary-adjective", "A1-Vocabulary-noun"]


def test_clear_removes_every_category_of_level_and_skill_only():
    cache = HistoryCache()
    cache.record(GenerationKey("A1", Skill.VOCABULARY, "noun"), "Tisch")
    cache.record(GenerationKey("A1", Skill.VOCABULARY, "adjective"), "groß")
    cache.record(GenerationKey("A1", Skill.ASSESSMENT), "Ich ___ Student.")
    cache.record(GenerationKey("A2", Skill.VOCABULARY, "noun"), "Stuhl")

    removed = cache.clear("A1", Skill.VOCABULARY)

    assert removed == 2
    assert sorted(cache.bucket_ids()) == ["A1-Assessment", "A2-Vocabulary-noun"]


def test_clear_prefix_with_no_match_is_noop():
    cache = HistoryCache()
    cache.record(GenerationKey("C1", Skill.WRITING), "Schreiben Sie über Ihren Urlaub")
    assert cache.clear_prefix("C2-Writing") == 0
    assert len(cache) == 1
