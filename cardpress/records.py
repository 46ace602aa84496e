"""
Card list parsing.

A card list is a UTF-8 comma-separated table. The first row is a header and
is ignored; every other row is mapped positionally onto the columns of an
explicitly declared :class:`TableSchema`. Quoted fields may contain commas.

Rows that do not fit the schema, have no name, or name an unknown card kind
are dropped with a warning. Numeric columns never reject a row: attack and
defense fall back to 0 and rarity to 1.
"""
import csv
import io
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .errors import Diagnostics, InputNotFoundError

logger = logging.getLogger(__name__)

# CSV column name constants
COL_NAME = "name"
COL_LEVEL = "level"
COL_TRAITS = "traits"
COL_EFFECT = "effect"
COL_ATTACK = "attack"
COL_DEFENSE = "defense"
COL_SUBTYPE = "subtype"
COL_CONDITION = "condition"
COL_AFFINITY = "affinity"
COL_RARITY = "rarity"
COL_KIND = "kind"

TRAIT_DELIMITER = ";"
DEFAULT_RARITY = 1


class CardKind(Enum):
    UNIT = "Unit"
    SPELL = "Spell"

    @classmethod
    def from_text(cls, text) -> Optional["CardKind"]:
        s = cell_text(text).strip().lower()
        for kind in cls:
            if kind.value.lower() == s:
                return kind
        return None


@dataclass(frozen=True)
class UnitCard:
    name: str
    effect: str = ""
    affinity: str = ""
    rarity: int = DEFAULT_RARITY
    level: str = ""
    traits: Tuple[str, ...] = ()
    attack: int = 0
    defense: int = 0

    kind = CardKind.UNIT


@dataclass(frozen=True)
class SpellCard:
    name: str
    effect: str = ""
    affinity: str = ""
    rarity: int = DEFAULT_RARITY
    subtype: str = ""
    condition: str = ""

    kind = CardKind.SPELL


CardRecord = Union[UnitCard, SpellCard]


@dataclass(frozen=True)
class TableSchema:
    """Positional column layout of a card table."""

    name: str
    columns: Tuple[str, ...]
    deprecated: bool = False

    @property
    def width(self) -> int:
        return len(self.columns)


LEGACY_SCHEMA = TableSchema(
    "legacy",
    (COL_NAME, COL_LEVEL, COL_TRAITS, COL_EFFECT, COL_ATTACK, COL_DEFENSE,
     COL_SUBTYPE, COL_CONDITION, COL_KIND),
    deprecated=True,
)
STANDARD_SCHEMA = TableSchema(
    "standard",
    (COL_NAME, COL_LEVEL, COL_TRAITS, COL_EFFECT, COL_ATTACK, COL_DEFENSE,
     COL_SUBTYPE, COL_CONDITION, COL_RARITY, COL_KIND),
)
EXTENDED_SCHEMA = TableSchema(
    "extended",
    (COL_NAME, COL_LEVEL, COL_TRAITS, COL_EFFECT, COL_ATTACK, COL_DEFENSE,
     COL_SUBTYPE, COL_CONDITION, COL_AFFINITY, COL_RARITY, COL_KIND),
)
SCHEMAS = {s.name: s for s in (LEGACY_SCHEMA, STANDARD_SCHEMA, EXTENDED_SCHEMA)}


def get_schema(name: str) -> TableSchema:
    try:
        return SCHEMAS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown table schema '{name}' (expected one of: {', '.join(SCHEMAS)})") from None


# csv cells are always str; None only for absent optional columns
def cell_text(val) -> str:
    return str(val or "")


def parse_int(text, default: int) -> int:
    try:
        return int(cell_text(text).strip())
    except ValueError:
        return default


def split_traits(text) -> Tuple[str, ...]:
    return tuple(t.strip() for t in cell_text(text).split(TRAIT_DELIMITER) if t.strip())


def tokenize_rows(text: str) -> Iterator[Tuple[int, List[str]]]:
    """Yield ``(line_number, fields)`` for every non-blank row, fields stripped."""
    reader = csv.reader(io.StringIO(text), skipinitialspace=True)
    for fields in reader:
        fields = [f.strip() for f in fields]
        if not any(fields):
            continue
        yield reader.line_num, fields


def fit_row(fields: List[str], schema: TableSchema) -> Optional[Dict[str, str]]:
    """Map fields onto schema columns, or None when the row does not fit.

    Surplus columns are tolerated only when they are all blank.
    """
    if len(fields) < schema.width:
        return None
    if any(fields[schema.width:]):
        return None
    return dict(zip(schema.columns, fields))


def build_record(values: Dict[str, str], kind: CardKind) -> CardRecord:
    common = dict(
        name=values[COL_NAME],
        effect=values.get(COL_EFFECT, ""),
        affinity=values.get(COL_AFFINITY, ""),
        rarity=parse_int(values.get(COL_RARITY), DEFAULT_RARITY),
    )
    if kind is CardKind.UNIT:
        return UnitCard(
            level=values.get(COL_LEVEL, ""),
            traits=split_traits(values.get(COL_TRAITS, "")),
            attack=parse_int(values.get(COL_ATTACK), 0),
            defense=parse_int(values.get(COL_DEFENSE), 0),
            **common,
        )
    return SpellCard(
        subtype=values.get(COL_SUBTYPE, ""),
        condition=values.get(COL_CONDITION, ""),
        **common,
    )


def parse_card_table(text: str, schema: TableSchema = STANDARD_SCHEMA,
                     diagnostics: Optional[Diagnostics] = None) -> List[CardRecord]:
    """Parse a card table into records, in table order, skipping the header."""
    if diagnostics is None:
        diagnostics = Diagnostics()
    if schema.deprecated:
        logger.warning(f"Table schema '{schema.name}' is deprecated; prefer '{STANDARD_SCHEMA.name}'")

    rows = tokenize_rows(text)
    header = next(rows, None)
    records: List[CardRecord] = []
    if header is None:
        logger.warning("Card table is empty")
        return records
    if len(header[1]) != schema.width:
        logger.warning(f"Header has {len(header[1])} columns, schema '{schema.name}' expects {schema.width}")

    for line_no, fields in rows:
        subject = f"line {line_no}"
        values = fit_row(fields, schema)
        if values is None:
            diagnostics.warning(subject, f"expected {schema.width} columns, found {len(fields)}; row skipped")
            continue
        if not values[COL_NAME]:
            diagnostics.warning(subject, "card has no name; row skipped")
            continue
        kind = CardKind.from_text(values[COL_KIND])
        if kind is None:
            diagnostics.warning(subject, f"unrecognized card kind '{values[COL_KIND]}'; row skipped")
            continue
        records.append(build_record(values, kind))

    logger.info(f"Parsed {len(records)} card(s) using schema '{schema.name}'")
    return records


def load_card_table(path, schema: TableSchema = STANDARD_SCHEMA,
                    diagnostics: Optional[Diagnostics] = None) -> List[CardRecord]:
    if not os.path.isfile(path):
        raise InputNotFoundError(path, "card table")
    with open(path, encoding="utf-8-sig", newline="") as f:
        text = f.read()
    return parse_card_table(text, schema=schema, diagnostics=diagnostics)
