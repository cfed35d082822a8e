"""Tests for fuzzy subsequence scoring."""

from liftoff.core.matcher import fuzzy_score


class TestFuzzyScore:
    """Match / no-match decisions and score ordering."""

    def test_empty_pattern_matches_with_zero(self):
        assert fuzzy_score("anything", "") == 0
        assert fuzzy_score("", "") == 0

    def test_subsequence_required(self):
        assert fuzzy_score("cat", "ct") is not None
        assert fuzzy_score("cut", "ct") is not None
        assert fuzzy_score("cut", "at") is None
        assert fuzzy_score("cat", "tc") is None
        assert fuzzy_score("", "a") is None

    def test_pattern_longer_than_name(self):
        assert fuzzy_score("ls", "lsblk") is None

    def test_contiguous_beats_scattered(self):
        assert fuzzy_score("firefox", "fire") > fuzzy_score("fxixrxe", "fire")

    def test_match_near_start_beats_late_match(self):
        assert fuzzy_score("cat", "cat") > fuzzy_score("xxcat", "cat")

    def test_word_boundary_bonus(self):
        assert fuzzy_score("git-log", "gl") > fuzzy_score("gxxlog", "gl")

    def test_case_sensitive_by_default(self):
        assert fuzzy_score("Firefox", "fire") is None
        assert fuzzy_score("Firefox", "Fire") is not None

    def test_smart_case(self):
        assert fuzzy_score("Firefox", "fire", smart_case=True) is not None
        assert fuzzy_score("firefox", "Fire", smart_case=True) is None

    def test_tightest_window_is_scored(self):
        # the adjacent "ab" at the end is scored, not the first "a"
        assert fuzzy_score("a_ab", "ab") > fuzzy_score("a__b", "ab")
