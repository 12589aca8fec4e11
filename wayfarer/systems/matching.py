"""
Named string-matching strategies.

Several systems identify things by loosely-typed names: curses and
blessings are removed by name, skills are looked up by name, and
knowledge references come straight from generated prose. Each call site
picks a strategy by name from this module so the leniency can be
tightened in one place.

    exact     "wolf curse" == "Wolf Curse"
    contains  "wolf" in "Wolf Curse (from the witch)"
"""

from typing import Callable, Iterable, TypeVar

T = TypeVar("T")

Matcher = Callable[[str, str], bool]


def _fold(text: str) -> str:
    return " ".join(text.split()).lower()


def exact(needle: str, candidate: str) -> bool:
    """Case- and whitespace-insensitive equality."""
    return bool(needle.strip()) and _fold(needle) == _fold(candidate)


def contains(needle: str, candidate: str) -> bool:
    """Needle appears anywhere inside candidate. Empty needles never match."""
    folded = _fold(needle)
    return bool(folded) and folded in _fold(candidate)


STRATEGIES: dict[str, Matcher] = {
    "exact": exact,
    "contains": contains,
}

# Strategy used by each call site
AFFLICTION_MATCH = "contains"
SKILL_MATCH = "contains"
KNOWLEDGE_MATCH = "contains"


def get_matcher(name: str) -> Matcher:
    try:
        return STRATEGIES[name]
    except KeyError:
        raise ValueError(f"Unknown match strategy: {name}") from None


def find_first(
    needle: str,
    candidates: Iterable[T],
    strategy: str = "exact",
    key: Callable[[T], str] = str,
) -> T | None:
    """
    Return the first candidate matching needle.

    An exact match always wins over a lenient one, so "fire" finds
    "fire" before "fireball" when both are present.
    """
    pool = list(candidates)
    for candidate in pool:
        if exact(needle, key(candidate)):
            return candidate
    matcher = get_matcher(strategy)
    for candidate in pool:
        if matcher(needle, key(candidate)):
            return candidate
    return None
