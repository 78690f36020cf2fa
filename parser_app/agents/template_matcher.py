"""Local template matching for free-form references like "let's do push day".

Matching is case-insensitive. A template matches when its whole name appears
in the text, or when one of the name's distinctive words does ("push" picks
"Push Day A"). Generic words such as "day" or "workout", connectives like
"and", and single-letter variant markers never match on their own, so
"arm day" does not pick "Leg Day". The model still sees every template;
this only ranks the likely reference so the prompt can point at it.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")

_TOKEN = re.compile(r"[a-z0-9]+")

GENERIC_WORDS = frozenset(
    {
        "a", "an", "the", "my", "our", "usual", "regular", "normal",
        "day", "days", "workout", "workouts", "session", "routine", "template",
        "training", "plan", "meal", "meals",
        "breakfast", "lunch", "dinner", "snack",
        "and", "with", "of", "then", "or", "plus", "to", "for", "on", "in",
    }
)


def _tokens(text: str) -> List[str]:
    return _TOKEN.findall(text.lower())


def _stem(token: str) -> str:
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


def _score(name: str, text_tokens: Sequence[str], text_phrase: str) -> int:
    name_tokens = _tokens(name)
    if not name_tokens:
        return 0
    if f" {' '.join(name_tokens)} " in text_phrase:
        return 100 + len(name_tokens)

    stems = {_stem(t) for t in text_tokens}
    distinctive = [t for t in name_tokens if t not in GENERIC_WORDS and len(t) > 1]
    if not any(_stem(t) in stems for t in distinctive):
        return 0
    # Rank by how much of the name the text covers
    return sum(1 for t in name_tokens if _stem(t) in stems)


def match(templates: Sequence[T], reference_text: str) -> List[T]:
    """Templates referenced by ``reference_text``, best match first.

    Templates need a ``name`` attribute; unnamed ones never match. No match
    returns an empty list.
    """
    text_tokens = _tokens(reference_text or "")
    if not text_tokens:
        return []
    text_phrase = f" {' '.join(text_tokens)} "

    scored = []
    for position, template in enumerate(templates):
        name = getattr(template, "name", None)
        if not name:
            continue
        score = _score(name, text_tokens, text_phrase)
        if score > 0:
            scored.append((-score, position, template))
    scored.sort(key=lambda item: (item[0], item[1]))
    return [template for _, _, template in scored]


def best_match(templates: Sequence[T], reference_text: str) -> Optional[T]:
    matches = match(templates, reference_text)
    return matches[0] if matches else None
