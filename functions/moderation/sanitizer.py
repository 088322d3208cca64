# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""Blocklist-based content sanitization for user supplied seki fields."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from firebase_functions import logger

from shared.config import get_settings
from shared.constants import REPLACEMENT, SANITIZED_FIELDS

# Words/phrases to replace (case-insensitive, whole-word match).
DEFAULT_BLOCKLIST = (
    # Profanity & common variants
    "fuck", "fck", "fuk", "fucking", "fucker", "fucked",
    "shit", "sh1t", "shitty", "bullshit",
    "asshole", "ass", "damn", "crap", "wtf", "stfu", "bs",
    "bitch", "b1tch", "b*tch", "bitches",
    "bastard", "dick", "cock", "cunt", "pussy", "slut", "whore",
    "piss", "pissed", "dumbass", "dipshit", "dumbshit",
    "motherfucker", "mf", "mofo",
    # Insults & put-downs
    "idiot", "dumb", "stupid", "retard", "retarded", "retards",
    "moron", "trash", "loser", "freak",
    # Hate & slurs
    "nigger", "nigga", "niggas", "fag", "faggot", "faggots",
    "rape", "rapist", "pedo", "pedophile",
    # Violence / threats
    "kill", "killing", "murder", "die", "dying", "suicide",
    "hate", "hater", "terrorist", "bomb",
)

# A word boundary here is any character that is not a letter or digit.
_NOT_AFTER_ALNUM = r"(?<![^\W_])"
_NOT_BEFORE_ALNUM = r"(?![^\W_])"
_ALNUM = re.compile(r"[^\W_]")


def _normalize_words(words: Iterable[str]) -> frozenset[str]:
    normalized = set()
    for word in words:
        word = word.strip().lower()
        if word and not word.startswith("#"):
            normalized.add(word)
    return frozenset(normalized)


def _compile_pattern(words: frozenset[str]) -> Optional[re.Pattern]:
    if not words:
        return None
    # Longest first so "fucking" wins over "fuck" at the same position.
    ordered = sorted(words, key=lambda w: (-len(w), w))
    alternation = "|".join(re.escape(w) for w in ordered)
    return re.compile(
        f"{_NOT_AFTER_ALNUM}(?:{alternation}){_NOT_BEFORE_ALNUM}", re.IGNORECASE
    )


@dataclass(frozen=True)
class Blocklist:
    """An immutable set of blocked words and the token that replaces them."""

    words: frozenset[str]
    replacement: str = REPLACEMENT
    pattern: Optional[re.Pattern] = None

    @classmethod
    def from_words(
        cls, words: Iterable[str], replacement: str = REPLACEMENT
    ) -> "Blocklist":
        if not replacement or _ALNUM.search(replacement):
            raise ValueError(
                f"Replacement {replacement!r} must be non-empty and contain no"
                " letters or digits."
            )
        normalized = _normalize_words(words)
        # A second pass can only match across a replacement if an entry has a
        # non-alphanumeric edge or contains the replacement itself.
        for word in normalized:
            if not (_ALNUM.match(word[0]) and _ALNUM.match(word[-1])):
                raise ValueError(
                    f"Blocklist entry {word!r} must start and end with a letter"
                    " or digit."
                )
            if replacement.lower() in word:
                raise ValueError(
                    f"Blocklist entry {word!r} contains the replacement"
                    f" {replacement!r}."
                )
        return cls(
            words=normalized,
            replacement=replacement,
            pattern=_compile_pattern(normalized),
        )

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and word.lower() in self.words


def load_blocklist(
    path: Optional[str] = None, replacement: str = REPLACEMENT
) -> Blocklist:
    """
    Builds a blocklist from `path` (one word per line, `#` starts a comment
    line) or from the built-in DEFAULT_BLOCKLIST when no path is given.
    """
    if path is None:
        return Blocklist.from_words(DEFAULT_BLOCKLIST, replacement)
    content = Path(path).read_text(encoding="utf-8")
    return Blocklist.from_words(content.splitlines(), replacement)


@lru_cache(maxsize=1)
def get_blocklist() -> Blocklist:
    """Return the process-wide blocklist, loaded once from settings."""
    settings = get_settings()
    return load_blocklist(settings.blocklist_file, settings.replacement)


def sanitize_text(text: Any, blocklist: Optional[Blocklist] = None) -> Any:
    """
    Replaces every whole-word, case-insensitive blocklist match in `text`.

    Non-string and blank values are returned unchanged.
    """
    if not isinstance(text, str) or not text.strip():
        return text
    if blocklist is None:
        blocklist = get_blocklist()
    if blocklist.pattern is None:
        return text
    return blocklist.pattern.sub(lambda _: blocklist.replacement, text)


def compute_sanitized_updates(
    data: Mapping[str, Any],
    fields: Iterable[str] = SANITIZED_FIELDS,
    blocklist: Optional[Blocklist] = None,
) -> dict:
    """Returns {field: sanitized value} for the string fields that changed."""
    updates = {}
    for field in fields:
        value = data.get(field)
        if not isinstance(value, str):
            continue
        sanitized = sanitize_text(value, blocklist)
        if sanitized != value:
            updates[field] = sanitized
    return updates


def sanitize_seki_snapshot(
    doc_id: str, snapshot: Any, blocklist: Optional[Blocklist] = None
) -> dict:
    """
    Sanitizes deviceName and note of a written seki document.

    Writes back only the fields that changed, and nothing at all when the
    content is already clean, so the update does not re-trigger itself.
    Returns the applied updates.
    """
    if snapshot is None or not snapshot.exists:
        return {}
    data = snapshot.to_dict()
    if not data:
        return {}

    updates = compute_sanitized_updates(data, blocklist=blocklist)
    if not updates:
        return {}

    logger.info(
        "Sanitizing seki content", docId=doc_id, fieldsUpdated=list(updates)
    )
    snapshot.reference.update(updates)
    return updates
