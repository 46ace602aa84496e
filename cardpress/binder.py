"""
Bind a card record onto its template.

Binding never fails: slots without a role keep their authored content,
missing values render empty, and an empty optional value (a spell without a
condition) hides its slot together with the panel behind it.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Set

from PIL import Image

from .drawing import load_font, text_width
from .records import CardRecord
from .templates import OPTIONAL_ROLES, CardTemplate, SlotRole, TextSlot, parent_ids
from .themes import RGB, AffinityTheme, RarityTheme

logger = logging.getLogger(__name__)

ROLE_FIELDS = {
    SlotRole.NAME: "name",
    SlotRole.DESCRIPTION: "effect",
    SlotRole.ATTACK: "attack",
    SlotRole.DEFENSE: "defense",
    SlotRole.LEVEL: "level",
    SlotRole.CONDITION: "condition",
    SlotRole.TAGS: "traits",
    SlotRole.SUBTYPE: "subtype",
}
TRAIT_SEPARATOR = ", "

Measure = Callable[[TextSlot, str], float]


def fit_scale(natural_width: float, box_width: float, no_scale: bool = False) -> float:
    """Horizontal scale that squeezes text of ``natural_width`` into ``box_width``."""
    if no_scale or natural_width <= box_width or natural_width <= 0:
        return 1.0
    return box_width / natural_width


def role_value(record: CardRecord, role: SlotRole) -> str:
    """Text for ``role``; fields the record's kind does not carry read as empty."""
    value = getattr(record, ROLE_FIELDS[role], None)
    if value is None:
        return ""
    if isinstance(value, tuple):
        return TRAIT_SEPARATOR.join(value)
    return str(value)


def measure_slot_text(slot: TextSlot, text: str) -> float:
    return text_width(text, load_font(slot.size, slot.font))


@dataclass
class BoundText:
    slot: TextSlot
    text: str
    natural_width: float = 0.0
    scale_x: float = 1.0


@dataclass
class BoundCard:
    """A template instance with one record's data applied."""

    template: CardTemplate
    record: CardRecord
    texts: Dict[str, BoundText] = field(default_factory=dict)
    fills: Dict[str, RGB] = field(default_factory=dict)
    hidden: Set[str] = field(default_factory=set)
    art: Optional[Image.Image] = None
    icon_path: Optional[str] = None

    def is_hidden(self, element_id: str) -> bool:
        if element_id in self.hidden:
            return True
        return any(p in self.hidden for p in parent_ids(element_id))

    def fill_for(self, panel) -> RGB:
        return self.fills.get(panel.id, panel.fill)


def apply_rarity(bound: BoundCard, rarity: Optional[RarityTheme]):
    template = bound.template
    if rarity is None:
        logger.debug(f"No rarity theme for '{bound.record.name}' (tier {bound.record.rarity}); keeping template colors")
        return
    if template.base_background:
        bound.fills[template.base_background] = rarity.secondary_color
    if template.name_label:
        bound.fills[template.name_label] = rarity.primary_color


def apply_affinity(bound: BoundCard, affinity: Optional[AffinityTheme]):
    if affinity is None:
        return
    if bound.template.affinity_backdrop:
        bound.fills[bound.template.affinity_backdrop] = affinity.backdrop_color
    icon = affinity.symbol_icon
    if icon and os.path.isfile(icon):
        bound.icon_path = icon
    elif icon:
        logger.warning(f"Affinity icon not found for '{affinity.name}': {icon}")


def bind_card(template: CardTemplate, record: CardRecord,
              affinity: Optional[AffinityTheme] = None,
              rarity: Optional[RarityTheme] = None,
              art: Optional[Image.Image] = None,
              measure: Optional[Measure] = None) -> BoundCard:
    measure = measure or measure_slot_text
    bound = BoundCard(template=template, record=record, art=art)
    apply_rarity(bound, rarity)
    apply_affinity(bound, affinity)

    for slot in template.text_slots:
        if slot.role is None:
            continue
        text = role_value(record, slot.role)
        if not text.strip() and slot.role in OPTIONAL_ROLES:
            bound.hidden.add(slot.id)
            bound.hidden.update(parent_ids(slot.id))
            continue
        bound_text = BoundText(slot=slot, text=text)
        if not slot.no_scale and text:
            bound_text.natural_width = measure(slot, text)
            bound_text.scale_x = fit_scale(bound_text.natural_width, slot.box_width)
        bound.texts[slot.id] = bound_text

    return bound
