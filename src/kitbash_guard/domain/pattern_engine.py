"""Pattern matching primitives for guard rules with compilation caching."""

import re
from functools import lru_cache
from typing import Any

import structlog
from jsonpath_ng import parse as jsonpath_parse

MAX_PATTERN_LENGTH = 1000


class PatternEngine:
    """Regex and JSONPath helpers shared by all rules.

    Every public ``match_*``/``extract_*`` method is total: a pattern that
    fails to compile or evaluate is logged and reported as "no match".
    """

    def __init__(self) -> None:
        self.logger = structlog.get_logger(__name__)

    @staticmethod
    @lru_cache(maxsize=256)
    def _compile_regex(pattern: str, ignore_case: bool = False) -> re.Pattern[str]:
        """Compile and cache regex patterns."""
        if len(pattern) > MAX_PATTERN_LENGTH:
            raise ValueError("Regex pattern too long")
        try:
            return re.compile(pattern, re.IGNORECASE if ignore_case else 0)
        except re.error as e:
            raise ValueError(f"Invalid regex pattern: {e}") from e

    @staticmethod
    @lru_cache(maxsize=64)
    def _compile_jsonpath(pattern: str) -> Any:
        """Compile and cache JSONPath expressions."""
        try:
            return jsonpath_parse(pattern)
        except Exception as e:
            raise ValueError(f"Invalid JSONPath pattern: {e}") from e

    def search_regex(
        self, pattern: str, value: str, ignore_case: bool = False
    ) -> re.Match[str] | None:
        """Return the first match of ``pattern`` in ``value``, if any."""
        try:
            return self._compile_regex(pattern, ignore_case).search(value)
        except ValueError as e:
            self.logger.warning("Regex matching failed", pattern=pattern, error=str(e))
            return None

    def match_regex(self, pattern: str, value: str, ignore_case: bool = False) -> bool:
        return self.search_regex(pattern, value, ignore_case) is not None

    def findall_regex(
        self, pattern: str, value: str, ignore_case: bool = False
    ) -> list[str]:
        """Return every non-overlapping match of ``pattern`` in ``value``."""
        try:
            compiled = self._compile_regex(pattern, ignore_case)
        except ValueError as e:
            self.logger.warning("Regex matching failed", pattern=pattern, error=str(e))
            return []
        return [m.group(0) for m in compiled.finditer(value)]

    def extract_text(self, paths: list[str], data: dict[str, Any]) -> str | None:
        """Return the first non-empty string selected by ``paths`` in ``data``."""
        for path in paths:
            try:
                matches = self._compile_jsonpath(path).find(data)
            except ValueError as e:
                self.logger.warning("JSONPath lookup failed", path=path, error=str(e))
                continue
            for match in matches:
                if isinstance(match.value, str) and match.value.strip():
                    return match.value
        return None

    def validate_pattern(self, pattern: str, ignore_case: bool = False) -> bool:
        """Check that a regex compiles without matching anything."""
        try:
            self._compile_regex(pattern, ignore_case)
            return True
        except ValueError:
            return False

    def validate_jsonpath(self, path: str) -> bool:
        try:
            self._compile_jsonpath(path)
            return True
        except ValueError:
            return False
