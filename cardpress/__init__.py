"""
Batch renderer for card-game card lists.

Parses a card table, binds each card onto the Unit or Spell template with
its affinity and rarity theme, rasterizes it to a transparent PNG, and
optionally packs the renders into print sheets.
"""

from .pipeline import CardRenderer, ExportReport, export_cards, export_sheets, pack_folder
from .records import CardKind, SpellCard, UnitCard, load_card_table, parse_card_table

__all__ = [
    "CardKind",
    "CardRenderer",
    "ExportReport",
    "SpellCard",
    "UnitCard",
    "export_cards",
    "export_sheets",
    "load_card_table",
    "pack_folder",
    "parse_card_table",
]
