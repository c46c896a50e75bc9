"""Genre filter combinations used to partition TMDB discovery."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal


GenreMatch = Literal["all", "any"]

_AND_SEPARATOR = ","
_OR_SEPARATOR = "|"


@dataclass(frozen=True)
class QueryCombination:
    """A set of TMDB genre ids combined with AND (``all``) or OR (``any``)."""

    genre_ids: tuple[int, ...]
    match: GenreMatch = "all"

    @property
    def with_genres(self) -> str:
        """Return the ``with_genres`` filter value understood by TMDB."""

        separator = _AND_SEPARATOR if self.match == "all" else _OR_SEPARATOR
        return separator.join(str(genre_id) for genre_id in self.genre_ids)

    @classmethod
    def parse(cls, value: str) -> "QueryCombination":
        """Parse ``"28,12"`` (AND) or ``"28|12"`` (OR) into a combination."""

        text = value.strip()
        if _AND_SEPARATOR in text and _OR_SEPARATOR in text:
            raise ValueError(f"Genre combination {value!r} mixes AND and OR")
        match: GenreMatch = "any" if _OR_SEPARATOR in text else "all"
        separator = _OR_SEPARATOR if match == "any" else _AND_SEPARATOR
        genre_ids = tuple(parse_genre_ids(text.split(separator)))
        if not genre_ids:
            raise ValueError(f"Genre combination {value!r} names no genres")
        return cls(genre_ids=genre_ids, match=match)

    def __str__(self) -> str:
        return self.with_genres


def parse_genre_ids(values: Iterable[object]) -> list[int]:
    """Convert raw genre identifiers to integers, skipping blanks."""

    genre_ids: list[int] = []
    for value in values:
        text = str(value).strip()
        if not text:
            continue
        try:
            genre_ids.append(int(text))
        except ValueError as exc:
            raise ValueError(f"Invalid TMDB genre id: {text!r}") from exc
    return genre_ids


# Action/Adventure, Action/Comedy, Action/Fantasy, Fantasy/Adventure, Fantasy/Comedy
DEFAULT_GENRE_COMBINATIONS: tuple[QueryCombination, ...] = (
    QueryCombination(genre_ids=(28, 12)),
    QueryCombination(genre_ids=(28, 35)),
    QueryCombination(genre_ids=(28, 14)),
    QueryCombination(genre_ids=(14, 12)),
    QueryCombination(genre_ids=(14, 35)),
)

# Animation, Music
DEFAULT_EXCLUDED_GENRES: tuple[int, ...] = (16, 10402)
