"""Country alias table: many raw spellings resolve to one canonical name."""

import logging
import re
from collections import defaultdict
from collections.abc import Iterable, Mapping

from tradelens.models import NormalizedCountry

logger = logging.getLogger(__name__)

# raw spelling -> canonical name
DEFAULT_ALIASES: dict[str, str] = {
    "United States of America": "United States",
    "USA": "United States",
    "US": "United States",
    "U.S.": "United States",
    "Russian Federation": "Russia",
    "People's Republic of China": "China",
    "PRC": "China",
    "Cote d'Ivoire": "Ivory Coast",
    "Côte d'Ivoire": "Ivory Coast",
    "Congo": "Republic of the Congo",
    "Dem. Rep. Congo": "DR Congo",
    "Democratic Republic of the Congo": "DR Congo",
    "Central African Rep.": "Central African Republic",
    "Dominican Rep.": "Dominican Republic",
    "Bosnia and Herz.": "Bosnia and Herzegovina",
    "Eq. Guinea": "Equatorial Guinea",
    "S. Sudan": "South Sudan",
    "Solomon Is.": "Solomon Islands",
    "UK": "United Kingdom",
    "Korea, South": "South Korea",
    "Korea, North": "North Korea",
    "UAE": "United Arab Emirates",
    "eSwatini": "Eswatini",
    "Czech Republic": "Czechia",
}

_WS = re.compile(r"\s+")


def _clean(name: str) -> str:
    return _WS.sub(" ", name).strip()


class AliasTable:
    """Resolves raw country names to canonical identities.

    A name is "mapped" when it resolves to a known canonical identity: either
    an alias target, or a name registered via ``register`` (typically the
    feature names of the world topology). Unmapped names pass through
    unchanged.
    """

    def __init__(
        self,
        aliases: Mapping[str, str] | None = None,
        extra: Mapping[str, str] | None = None,
    ) -> None:
        merged = dict(DEFAULT_ALIASES if aliases is None else aliases)
        merged.update(extra or {})
        self._aliases = {_clean(k).casefold(): _clean(v) for k, v in merged.items()}
        self._spellings: dict[str, set[str]] = defaultdict(set)
        for k, v in merged.items():
            self._spellings[_clean(v)].add(_clean(k))
        self._known: dict[str, str] = {}
        for canonical in self._aliases.values():
            self._known[canonical.casefold()] = canonical

    def register(self, names: Iterable[str]) -> None:
        """Add canonical identities (after alias resolution)."""
        for name in names:
            canonical, _ = self.resolve(name)
            self._known.setdefault(canonical.casefold(), canonical)

    def resolve(self, raw: str) -> tuple[str, bool]:
        """Return (canonical_name, mapped)."""
        name = _clean(raw)
        key = name.casefold()
        if key in self._aliases:
            return self._aliases[key], True
        if key in self._known:
            return self._known[key], True
        return name, False

    def canonical(self, raw: str) -> str:
        return self.resolve(raw)[0]

    def index(self, seen: Iterable[str] = ()) -> dict[str, NormalizedCountry]:
        """Canonical name -> NormalizedCountry with every alias spelling observed or declared."""
        spellings = defaultdict(set, {k: set(v) for k, v in self._spellings.items()})
        for raw in seen:
            canonical, mapped = self.resolve(raw)
            if mapped and _clean(raw) != canonical:
                spellings[canonical].add(_clean(raw))
        return {
            name: NormalizedCountry(name=name, aliases=frozenset(aliases))
            for name, aliases in spellings.items()
        }
