"""
Affinity and rarity themes.

Two independent lookups feed the card binder:

- :class:`AffinityMap` resolves an affinity name (case-insensitive) to a
  backdrop color and symbol icon. Unknown or blank names fall back to the
  designated default entry, so lookup never fails.
- :class:`RarityColorMap` resolves a rarity tier to a primary/secondary color
  pair. Unknown tiers are reported as not found (``None``); callers leave the
  template colors alone in that case.

Both maps build their lookup on first use and only rebuild through
``rebuild()``, which every mutating method calls.
"""
import logging
import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd
from PIL import ImageColor

from .errors import InputNotFoundError, ThemeTableError

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

DEFAULT_AFFINITY_NAME = "default"

# Built-in affinity data: backdrop color and symbol icon per affinity
DEFAULT_AFFINITIES = {
    "Sun": {"color": "#d98a2b", "icon": None},
    "Moon": {"color": "#5b6fb5", "icon": None},
    "Land": {"color": "#5d8a3a", "icon": None},
    "Sky": {"color": "#4aa3c9", "icon": None},
}
NEUTRAL_AFFINITY_COLOR = "#8c8c8c"

# Built-in rarity colors: primary tints the name label, secondary the base
DEFAULT_RARITIES = {
    1: {"primary": "#d8d4cc", "secondary": "#3a3d44"},
    2: {"primary": "#b9cde0", "secondary": "#2f4257"},
    3: {"primary": "#e8c766", "secondary": "#5a4517"},
    4: {"primary": "#f08a4b", "secondary": "#5c1f12"},
}


@dataclass(frozen=True)
class AffinityTheme:
    name: str
    backdrop_color: RGB
    symbol_icon: Optional[str] = None


@dataclass(frozen=True)
class RarityTheme:
    tier: int
    primary_color: RGB
    secondary_color: RGB


# Convert value to string, treating pandas NaN/None as empty string
def sanitize(val) -> str:
    s = str(val) if val is not None else ""
    return "" if s.lower() in ("nan", "none") else s


def parse_color(value) -> RGB:
    """Parse a CSS-style color (``#rrggbb``, ``rgb(...)``, names) to RGB."""
    text = sanitize(value).strip()
    if not text:
        raise ValueError("empty color")
    return ImageColor.getcolor(text, "RGB")


class AffinityMap:
    """Affinity name -> theme, with a designated default entry."""

    def __init__(self, entries: Iterable[AffinityTheme] = (), default: Optional[AffinityTheme] = None):
        self._entries: List[AffinityTheme] = list(entries)
        self.default = default or AffinityTheme(DEFAULT_AFFINITY_NAME, parse_color(NEUTRAL_AFFINITY_COLOR))
        self.duplicates: List[str] = []
        self._lookup: Optional[Dict[str, AffinityTheme]] = None

    @property
    def entries(self) -> Tuple[AffinityTheme, ...]:
        return tuple(self._entries)

    def add(self, entry: AffinityTheme):
        self._entries.append(entry)
        self.rebuild()

    def set_entries(self, entries: Iterable[AffinityTheme], default: Optional[AffinityTheme] = None):
        self._entries = list(entries)
        if default is not None:
            self.default = default
        self.rebuild()

    def rebuild(self):
        lookup: Dict[str, AffinityTheme] = {}
        duplicates = []
        for entry in self._entries:
            key = entry.name.strip().lower()
            if not key:
                continue
            if key in lookup:
                duplicates.append(entry.name)
                logger.warning(f"Duplicate affinity name ignored: {entry.name}")
                continue
            lookup[key] = entry
        self._lookup = lookup
        self.duplicates = duplicates

    def resolve(self, name) -> AffinityTheme:
        if self._lookup is None:
            self.rebuild()
        key = str(name or "").strip().lower()
        if not key:
            return self.default
        return self._lookup.get(key, self.default)

    def __len__(self):
        return len(self._entries)


class RarityColorMap:
    """Rarity tier -> color pair. No default: unknown tiers resolve to None."""

    def __init__(self, entries: Iterable[RarityTheme] = ()):
        self._entries: List[RarityTheme] = list(entries)
        self.duplicates: List[int] = []
        self._lookup: Optional[Dict[int, RarityTheme]] = None

    @property
    def entries(self) -> Tuple[RarityTheme, ...]:
        return tuple(self._entries)

    def add(self, entry: RarityTheme):
        self._entries.append(entry)
        self.rebuild()

    def set_entries(self, entries: Iterable[RarityTheme]):
        self._entries = list(entries)
        self.rebuild()

    def rebuild(self):
        lookup: Dict[int, RarityTheme] = {}
        duplicates = []
        for entry in self._entries:
            if entry.tier in lookup:
                duplicates.append(entry.tier)
                logger.warning(f"Duplicate rarity tier ignored: {entry.tier}")
                continue
            lookup[entry.tier] = entry
        self._lookup = lookup
        self.duplicates = duplicates

    def resolve(self, tier) -> Optional[RarityTheme]:
        if self._lookup is None:
            self.rebuild()
        try:
            key = int(tier)
        except (TypeError, ValueError):
            return None
        return self._lookup.get(key)

    def __len__(self):
        return len(self._entries)


def default_affinity_map() -> AffinityMap:
    return AffinityMap(
        AffinityTheme(name, parse_color(data["color"]), data.get("icon"))
        for name, data in DEFAULT_AFFINITIES.items()
    )


def default_rarity_map() -> RarityColorMap:
    return RarityColorMap(
        RarityTheme(tier, parse_color(data["primary"]), parse_color(data["secondary"]))
        for tier, data in DEFAULT_RARITIES.items()
    )


# ---------- table loading ----------
def read_table(path, required, what) -> pd.DataFrame:
    if not os.path.isfile(path):
        raise InputNotFoundError(path, what)
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True, encoding="utf-8-sig")
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ThemeTableError(f"Cannot read {what} {path}: {e}") from e
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ThemeTableError(f"{what} {path} is missing column(s): {', '.join(missing)}")
    return df


def _color_cell(row, column, path, line_no) -> RGB:
    try:
        return parse_color(row[column])
    except ValueError as e:
        raise ThemeTableError(f"{path}, row {line_no}: bad {column} color '{row[column]}' ({e})") from e


def load_affinity_table(path) -> AffinityMap:
    """Load ``name,color[,icon]`` rows; a row named ``default`` is the fallback."""
    df = read_table(path, ("name", "color"), "affinity table")
    base_dir = os.path.dirname(os.path.abspath(path))
    entries, default = [], None
    for idx, row in df.iterrows():
        name = sanitize(row["name"]).strip()
        if not name:
            continue
        icon = sanitize(row.get("icon", "")).strip()
        theme = AffinityTheme(
            name=name,
            backdrop_color=_color_cell(row, "color", path, idx + 2),
            symbol_icon=os.path.join(base_dir, icon) if icon else None,
        )
        if name.lower() == DEFAULT_AFFINITY_NAME and default is None:
            default = theme
        else:
            entries.append(theme)
    logger.info(f"Loaded {len(entries)} affinity theme(s) from {path}")
    return AffinityMap(entries, default=default)


def load_rarity_table(path) -> RarityColorMap:
    """Load ``tier,primary,secondary`` rows."""
    df = read_table(path, ("tier", "primary", "secondary"), "rarity table")
    entries = []
    for idx, row in df.iterrows():
        try:
            tier = int(sanitize(row["tier"]).strip())
        except ValueError as e:
            raise ThemeTableError(f"{path}, row {idx + 2}: bad tier '{row['tier']}'") from e
        entries.append(RarityTheme(
            tier=tier,
            primary_color=_color_cell(row, "primary", path, idx + 2),
            secondary_color=_color_cell(row, "secondary", path, idx + 2),
        ))
    logger.info(f"Loaded {len(entries)} rarity theme(s) from {path}")
    return RarityColorMap(entries)
