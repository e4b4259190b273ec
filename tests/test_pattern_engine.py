"""Tests for the pattern matching engine."""

from kitbash_guard.domain.pattern_engine import MAX_PATTERN_LENGTH, PatternEngine


class TestPatternEngine:
    """Test cases for PatternEngine functionality."""

    def setup_method(self):
        """Set up test fixtures."""
        self.pattern_engine = PatternEngine()
        self.payload = {
            "tool_name": "WebSearch",
            "tool_input": {"query": "", "command": "jj log"},
            "query": "rust async 2024",
        }

    def test_regex_matching(self):
        """Test regex pattern matching."""
        assert self.pattern_engine.match_regex(r"jj\s+split", "jj  split -m x")
        assert not self.pattern_engine.match_regex(r"jj\s+split", "git split")

        # Case sensitive by default
        assert not self.pattern_engine.match_regex(r"historical", "Historical data")
        assert self.pattern_engine.match_regex(
            r"historical", "Historical data", ignore_case=True
        )

    def test_search_returns_match(self):
        match = self.pattern_engine.search_regex(r"(?P<year>20\d\d)", "news 2023")
        assert match is not None
        assert match.group("year") == "2023"

    def test_invalid_regex_never_matches(self):
        """Invalid patterns are treated as no match instead of raising."""
        assert self.pattern_engine.search_regex(r"[unclosed", "anything") is None
        assert not self.pattern_engine.match_regex(r"(", "(")
        assert self.pattern_engine.findall_regex(r"*", "***") == []

    def test_regex_length_limit(self):
        long_pattern = "a" * (MAX_PATTERN_LENGTH + 1)
        assert not self.pattern_engine.validate_pattern(long_pattern)
        assert not self.pattern_engine.match_regex(long_pattern, "a" * 2000)

    def test_findall(self):
        years = self.pattern_engine.findall_regex(r"\b20[0-2][0-9]\b", "2023 vs 2024 vs 1999")
        assert years == ["2023", "2024"]

    def test_extract_text_first_non_empty(self):
        """Empty strings are skipped in favour of the next path."""
        text = self.pattern_engine.extract_text(
            ["$.tool_input.query", "$.query"], self.payload
        )
        assert text == "rust async 2024"

    def test_extract_text_missing_path(self):
        assert self.pattern_engine.extract_text(["$.tool_input.missing"], self.payload) is None
        assert self.pattern_engine.extract_text(["$.tool_input.command"], self.payload) == "jj log"

    def test_extract_text_ignores_non_strings(self):
        payload = {"tool_input": {"command": ["jj", "split"]}}
        assert self.pattern_engine.extract_text(["$.tool_input.command"], payload) is None

    def test_extract_text_invalid_path(self):
        assert self.pattern_engine.extract_text(["$[[["], self.payload) is None

    def test_validation(self):
        assert self.pattern_engine.validate_pattern(r"\bjj\s+describe\b")
        assert not self.pattern_engine.validate_pattern(r"(?P<broken")
        assert self.pattern_engine.validate_jsonpath("$.tool_input.command")
        assert not self.pattern_engine.validate_jsonpath("$[[[")
