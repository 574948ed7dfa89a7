"""
Fuzzy text matching support for locating footnote anchors.

This module provides fuzzy matching capabilities using the rapidfuzz library,
so that anchors quoted with typos or whitespace variations can still be found
using similarity thresholds.

Example:
    >>> from python_footnote_sync.fuzzy import fuzzy_find_all
    >>> fuzzy_find_all("The producti0n products are ready", "production products", 0.85)
    [(4, 23, 0.89...)]
"""

import re
from typing import Any

from rapidfuzz import fuzz

VALID_ALGORITHMS = ("ratio", "partial_ratio", "token_sort_ratio", "levenshtein")


def normalize_whitespace(text: str) -> str:
    """Normalize whitespace in text for matching.

    Replaces multiple whitespace characters with single spaces and strips
    leading/trailing whitespace.

    Example:
        >>> normalize_whitespace("hello    world\\n\\ttest")
        'hello world test'
    """
    return re.sub(r"\s+", " ", text).strip()


def _similarity(window: str, pattern: str, algorithm: str) -> float:
    if algorithm == "partial_ratio":
        return fuzz.partial_ratio(window, pattern) / 100.0
    if algorithm == "token_sort_ratio":
        return fuzz.token_sort_ratio(window, pattern) / 100.0
    # "ratio" and "levenshtein" both use the normalized edit distance
    return fuzz.ratio(window, pattern) / 100.0


def fuzzy_find_all(
    text: str,
    pattern: str,
    threshold: float = 0.9,
    algorithm: str = "ratio",
    normalize_ws: bool = False,
) -> list[tuple[int, int, float]]:
    """Find all fuzzy matches of pattern in text using a sliding window.

    Overlapping candidates are resolved in favour of the best score.

    Args:
        text: The text to search in
        pattern: The pattern to search for
        threshold: Similarity threshold (0.0 to 1.0), default 0.9
        algorithm: Matching algorithm (ratio, partial_ratio, token_sort_ratio, levenshtein)
        normalize_ws: Whether to normalize whitespace of the pattern before matching

    Returns:
        List of tuples (start_pos, end_pos, similarity_score), sorted by position.
        Positions always refer to ``text`` as given.

    Raises:
        ValueError: If threshold is not between 0 and 1, or algorithm is invalid
    """
    if not 0 <= threshold <= 1:
        raise ValueError(f"Threshold must be between 0 and 1, got {threshold}")
    if algorithm not in VALID_ALGORITHMS:
        raise ValueError(
            f"Invalid algorithm '{algorithm}'. Must be one of: {', '.join(VALID_ALGORITHMS)}"
        )

    search_pattern = normalize_whitespace(pattern) if normalize_ws else pattern
    pattern_len = len(search_pattern)
    if not pattern_len:
        return []

    # Allow for insertions/deletions
    min_len = max(1, int(pattern_len * 0.7))
    max_len = int(pattern_len * 1.3)

    matches: list[tuple[int, int, float]] = []
    for window_len in range(min_len, max_len + 1):
        for start in range(len(text) - window_len + 1):
            end = start + window_len
            window = text[start:end]
            if normalize_ws:
                window = normalize_whitespace(window)
            similarity = _similarity(window, search_pattern, algorithm)
            if similarity < threshold:
                continue

            overlaps = [
                i
                for i, (m_start, m_end, _score) in enumerate(matches)
                if not (end <= m_start or start >= m_end)
            ]
            if not overlaps:
                matches.append((start, end, similarity))
            elif similarity > max(matches[i][2] for i in overlaps):
                for i in sorted(overlaps, reverse=True):
                    del matches[i]
                matches.append((start, end, similarity))

    return sorted(matches, key=lambda x: x[0])


def find_similar_text(
    search_text: str,
    texts: list[str],
    max_suggestions: int = 3,
    min_similarity: float = 0.6,
) -> list[str]:
    """Find passages similar to ``search_text`` for error suggestions.

    Args:
        search_text: The text that was searched for
        texts: Block texts to look in
        max_suggestions: Maximum number of suggestions to return
        min_similarity: Minimum similarity threshold (0.0 to 1.0)

    Returns:
        Similar passages, best first
    """
    if not search_text or not any(t.strip() for t in texts):
        return []

    needle = search_text.lower()
    search_len = len(search_text)
    min_len = max(1, int(search_len * 0.7))
    max_len = int(search_len * 1.5)

    candidates: list[tuple[str, float]] = []
    seen: set[str] = set()
    for block_text in texts:
        for window_len in range(min_len, min(max_len, len(block_text)) + 1):
            for start in range(len(block_text) - window_len + 1):
                window = block_text[start : start + window_len].strip()
                normalized = window.lower()
                if not normalized or normalized in seen:
                    continue
                seen.add(normalized)
                similarity = fuzz.ratio(needle, normalized) / 100.0
                if similarity >= min_similarity:
                    candidates.append((window, similarity))

    candidates.sort(key=lambda x: x[1], reverse=True)
    return [text for text, _score in candidates[:max_suggestions]]


def parse_fuzzy_config(fuzzy: float | dict[str, Any] | None) -> dict[str, Any] | None:
    """Parse fuzzy matching configuration into a standardized dict.

    Accepts either:
    - None: Exact matching (no fuzzy)
    - float: Simple threshold (e.g., 0.9 for 90% similarity)
    - dict: Full config with threshold, algorithm, normalize_whitespace

    Raises:
        ValueError: If configuration is invalid

    Example:
        >>> parse_fuzzy_config(0.9)
        {'threshold': 0.9, 'algorithm': 'ratio', 'normalize_whitespace': False}
        >>> parse_fuzzy_config({'threshold': 0.85, 'algorithm': 'levenshtein'})
        {'threshold': 0.85, 'algorithm': 'levenshtein', 'normalize_whitespace': False}
    """
    if fuzzy is None:
        return None

    config: dict[str, Any] = {
        "threshold": 0.9,
        "algorithm": "ratio",
        "normalize_whitespace": False,
    }

    if isinstance(fuzzy, bool):
        raise ValueError("fuzzy parameter must be None, a float, or a dict, got bool")
    if isinstance(fuzzy, int | float):
        if not 0 <= fuzzy <= 1:
            raise ValueError(f"Fuzzy threshold must be between 0 and 1, got {fuzzy}")
        config["threshold"] = float(fuzzy)
    elif isinstance(fuzzy, dict):
        if "threshold" in fuzzy:
            threshold = fuzzy["threshold"]
            if not isinstance(threshold, int | float) or not (0 <= threshold <= 1):
                raise ValueError(
                    f"Fuzzy threshold must be a number between 0 and 1, got {threshold}"
                )
            config["threshold"] = float(threshold)

        if "algorithm" in fuzzy:
            algorithm = fuzzy["algorithm"]
            if algorithm not in VALID_ALGORITHMS:
                raise ValueError(
                    f"Invalid algorithm '{algorithm}'. "
                    f"Must be one of: {', '.join(VALID_ALGORITHMS)}"
                )
            config["algorithm"] = algorithm

        if "normalize_whitespace" in fuzzy:
            normalize = fuzzy["normalize_whitespace"]
            if not isinstance(normalize, bool):
                raise ValueError(
                    f"normalize_whitespace must be a boolean, got {type(normalize).__name__}"
                )
            config["normalize_whitespace"] = normalize
    else:
        raise ValueError(
            f"fuzzy parameter must be None, a float, or a dict, got {type(fuzzy).__name__}"
        )

    return config
