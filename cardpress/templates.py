"""
Card templates and their slot registry.

A template is a declarative layout in design units: an ordered list of
elements painted back to front. Element ids are path-like
(``DescriptionBack/CardDescription``); a slot nested under a panel is hidden
together with that panel.

Element types:

- ``panel``: filled shape (``style`` is one of gradient, frame, plaque,
  flat, bevel). May carry a base ``image`` file painted over the fill.
- ``text``: a text slot bound to one :class:`SlotRole`.
- ``image``: an image slot fed by the card art or the affinity icon.

Hooks name the elements the binder tints: ``base_background`` and
``name_label`` take the rarity colors, ``affinity_backdrop`` the affinity
color.
"""
import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from . import config
from .errors import InputNotFoundError, MissingAssetError, TemplateError
from .records import CardKind
from .themes import RGB, parse_color

logger = logging.getLogger(__name__)

Rect = Tuple[int, int, int, int]


class SlotRole(Enum):
    NAME = "name"
    DESCRIPTION = "description"
    ATTACK = "attack"
    DEFENSE = "defense"
    LEVEL = "level"
    CONDITION = "condition"
    TAGS = "tags"
    SUBTYPE = "subtype"


# Checked in order against the last segment of a slot id
ROLE_KEYWORDS = (
    (SlotRole.NAME, ("name",)),
    (SlotRole.DESCRIPTION, ("description", "effect")),
    (SlotRole.ATTACK, ("attack",)),
    (SlotRole.DEFENSE, ("defense",)),
    (SlotRole.LEVEL, ("level",)),
    (SlotRole.CONDITION, ("condition",)),
    (SlotRole.TAGS, ("tags", "traits")),
    (SlotRole.SUBTYPE, ("spelltype", "subtype")),
)

# Roles whose slot disappears entirely when the value is empty
OPTIONAL_ROLES = frozenset({SlotRole.CONDITION})

PANEL_STYLES = ("gradient", "frame", "plaque", "flat", "bevel")
IMAGE_SOURCES = ("art", "affinity_icon")
ALIGNMENTS = ("left", "center", "right")


@dataclass(frozen=True)
class Panel:
    id: str
    rect: Rect
    fill: RGB
    style: str = "flat"
    radius: int = 12
    image: Optional[str] = None


@dataclass(frozen=True)
class TextSlot:
    id: str
    rect: Rect
    size: int = 28
    font: str = "bold"
    color: RGB = (0, 0, 0)
    align: str = "left"
    wrap: bool = False
    no_scale: bool = False
    role: Optional[SlotRole] = None

    @property
    def box_width(self) -> int:
        return self.rect[2] - self.rect[0]


@dataclass(frozen=True)
class ImageSlot:
    id: str
    rect: Rect
    source: str = "art"


Element = Union[Panel, TextSlot, ImageSlot]


def match_role(slot_id: str) -> Optional[SlotRole]:
    """Case-insensitive keyword match on the last path segment of a slot id."""
    leaf = slot_id.rsplit("/", 1)[-1].lower()
    for role, keywords in ROLE_KEYWORDS:
        if any(k in leaf for k in keywords):
            return role
    return None


def parent_ids(element_id: str) -> List[str]:
    parts = element_id.split("/")
    return ["/".join(parts[:i]) for i in range(1, len(parts))]


class CardTemplate:
    """A loaded template with its role registry."""

    def __init__(self, name: str, size: Tuple[int, int], elements: List[Element],
                 base_background: Optional[str] = None, name_label: Optional[str] = None,
                 affinity_backdrop: Optional[str] = None, required_roles=()):
        self.name = name
        self.size = size
        self.elements = list(elements)
        self.base_background = base_background
        self.name_label = name_label
        self.affinity_backdrop = affinity_backdrop
        self.required_roles = tuple(required_roles)

        self._by_id: Dict[str, Element] = {}
        for element in self.elements:
            if element.id in self._by_id:
                raise TemplateError(f"Template '{name}' has duplicate element id '{element.id}'")
            self._by_id[element.id] = element
        for hook in (base_background, name_label, affinity_backdrop):
            if hook is not None and not isinstance(self._by_id.get(hook), Panel):
                raise TemplateError(f"Template '{name}' hook '{hook}' does not name a panel")

        self.slots_by_role: Dict[SlotRole, Tuple[TextSlot, ...]] = {}
        self.unmapped: List[str] = []
        for slot in self.text_slots:
            if slot.role is None:
                self.unmapped.append(slot.id)
                continue
            self.slots_by_role[slot.role] = self.slots_by_role.get(slot.role, ()) + (slot,)
        for slot_id in self.unmapped:
            logger.debug(f"Template '{name}': slot '{slot_id}' has no role and stays as authored")

        self.missing_roles = [r for r in self.required_roles if r not in self.slots_by_role]
        for role in self.missing_roles:
            logger.warning(f"Template '{name}' has no slot for required role '{role.value}'")

    @property
    def text_slots(self) -> List[TextSlot]:
        return [e for e in self.elements if isinstance(e, TextSlot)]

    @property
    def image_slots(self) -> List[ImageSlot]:
        return [e for e in self.elements if isinstance(e, ImageSlot)]

    def element(self, element_id: str) -> Optional[Element]:
        return self._by_id.get(element_id)

    def __repr__(self):
        return f"CardTemplate({self.name!r}, size={self.size}, elements={len(self.elements)})"


# ---------- loading ----------
def _rect(value, element_id) -> Rect:
    try:
        x0, y0, x1, y1 = (int(v) for v in value)
    except (TypeError, ValueError) as e:
        raise TemplateError(f"Element '{element_id}' has a bad rect: {value!r}") from e
    if x1 <= x0 or y1 <= y0:
        raise TemplateError(f"Element '{element_id}' has an empty rect: {value!r}")
    return x0, y0, x1, y1


def _int(value, owner, what) -> int:
    if isinstance(value, bool):
        raise TemplateError(f"{owner} has a bad {what}: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise TemplateError(f"{owner} has a bad {what}: {value!r}") from e


def _color(value, element_id) -> RGB:
    try:
        return parse_color(value)
    except ValueError as e:
        raise TemplateError(f"Element '{element_id}' has a bad color: {value!r}") from e


def load_element(definition: dict, base_dir: Optional[str] = None) -> Element:
    if not isinstance(definition, dict):
        raise TemplateError(f"Element definition must be an object, got {type(definition).__name__}")
    element_id = definition.get("id")
    if not element_id or not isinstance(element_id, str):
        raise TemplateError(f"Element without id: {definition!r}")
    kind = definition.get("type")
    rect = _rect(definition.get("rect"), element_id)

    if kind == "panel":
        style = definition.get("style", "flat")
        if style not in PANEL_STYLES:
            raise TemplateError(f"Panel '{element_id}' has unknown style '{style}'")
        image = definition.get("image")
        if image is not None and not isinstance(image, str):
            raise TemplateError(f"Panel '{element_id}' has a bad image path: {image!r}")
        if image and base_dir and not os.path.isabs(image):
            image = os.path.join(base_dir, image)
        return Panel(
            id=element_id,
            rect=rect,
            fill=_color(definition.get("fill", "#8c8c8c"), element_id),
            style=style,
            radius=_int(definition.get("radius", 12), f"Panel '{element_id}'", "radius"),
            image=image or None,
        )

    if kind == "text":
        align = definition.get("align", "left")
        if align not in ALIGNMENTS:
            raise TemplateError(f"Text slot '{element_id}' has unknown alignment '{align}'")
        if "role" in definition:
            try:
                role = SlotRole(str(definition["role"]).lower())
            except ValueError as e:
                raise TemplateError(f"Text slot '{element_id}' has unknown role '{definition['role']}'") from e
        else:
            role = match_role(element_id)
        font = definition.get("font", "bold")
        if not isinstance(font, str) or font not in config.FONT_CANDIDATES:
            raise TemplateError(f"Text slot '{element_id}' has unknown font '{font}'")
        wrap = bool(definition.get("wrap", False))
        return TextSlot(
            id=element_id,
            rect=rect,
            size=_int(definition.get("size", 28), f"Text slot '{element_id}'", "size"),
            font=font,
            color=_color(definition.get("color", "#000000"), element_id),
            align=align,
            wrap=wrap,
            # wrapped blocks never shrink horizontally
            no_scale=bool(definition.get("no_scale", wrap)),
            role=role,
        )

    if kind == "image":
        source = definition.get("source", "art")
        if source not in IMAGE_SOURCES:
            raise TemplateError(f"Image slot '{element_id}' has unknown source '{source}'")
        return ImageSlot(id=element_id, rect=rect, source=source)

    raise TemplateError(f"Element '{element_id}' has unknown type '{kind}'")


def load_template(definition: dict, base_dir: Optional[str] = None) -> CardTemplate:
    if not isinstance(definition, dict):
        raise TemplateError(f"Template definition must be an object, got {type(definition).__name__}")
    name = str(definition.get("name") or "Unnamed")
    owner = f"Template '{name}'"
    size = definition.get("size", config.TEMPLATE_SIZE)
    if not isinstance(size, (list, tuple)) or len(size) != 2:
        raise TemplateError(f"{owner} has a bad size: {size!r}")
    size = tuple(_int(v, owner, "size") for v in size)
    if min(size) < 1:
        raise TemplateError(f"{owner} has an empty size: {size!r}")
    for key in ("elements", "required_roles"):
        if not isinstance(definition.get(key, []), list):
            raise TemplateError(f"{owner}: '{key}' must be a list")
    elements = [load_element(d, base_dir) for d in definition.get("elements", [])]
    required = []
    for key in ("base_background", "name_label", "affinity_backdrop"):
        if not isinstance(definition.get(key, ""), str):
            raise TemplateError(f"{owner}: hook '{key}' must be an element id")
    for value in definition.get("required_roles", []):
        try:
            required.append(SlotRole(value))
        except ValueError as e:
            raise TemplateError(f"Template '{name}' requires unknown role '{value}'") from e
    template = CardTemplate(
        name=name,
        size=size,
        elements=elements,
        base_background=definition.get("base_background"),
        name_label=definition.get("name_label"),
        affinity_backdrop=definition.get("affinity_backdrop"),
        required_roles=required,
    )
    logger.debug(f"Loaded template {template!r}")
    return template


def load_template_file(path) -> CardTemplate:
    try:
        with open(path, encoding="utf-8") as f:
            definition = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise TemplateError(f"Template file {path} is not valid JSON: {e}") from e
    return load_template(definition, base_dir=os.path.dirname(os.path.abspath(path)))


TEMPLATE_FILES = {CardKind.UNIT: "unit.json", CardKind.SPELL: "spell.json"}


class TemplateSet:
    """The Unit and Spell templates used for a run."""

    def __init__(self, templates: Dict[CardKind, CardTemplate]):
        self.templates = dict(templates)

    @classmethod
    def builtin(cls) -> "TemplateSet":
        return cls({
            CardKind.UNIT: load_template(UNIT_TEMPLATE),
            CardKind.SPELL: load_template(SPELL_TEMPLATE),
        })

    @classmethod
    def from_folder(cls, folder) -> "TemplateSet":
        """Load ``unit.json`` / ``spell.json``; a missing file leaves that kind without a template."""
        if not os.path.isdir(folder):
            raise InputNotFoundError(folder, "template folder")
        templates = {}
        for kind, filename in TEMPLATE_FILES.items():
            path = os.path.join(folder, filename)
            if not os.path.isfile(path):
                logger.warning(f"No {kind.value} template at {path}; {kind.value} cards will be skipped")
                continue
            templates[kind] = load_template_file(path)
        return cls(templates)

    def get(self, kind: CardKind) -> CardTemplate:
        try:
            return self.templates[kind]
        except KeyError:
            raise MissingAssetError(f"No {kind.value} template loaded") from None

    def __contains__(self, kind):
        return kind in self.templates


# ---------- built-in layouts (750x1050 design units) ----------
PARCHMENT = "#f2e9d0"

_COMMON_TOP = [
    {"id": "Background", "type": "panel", "style": "gradient", "rect": [0, 0, 750, 1050],
     "fill": "#282d37", "radius": 36},
    {"id": "Frame", "type": "panel", "style": "frame", "rect": [18, 18, 732, 1032],
     "fill": "#8c8c8c", "radius": 30},
    {"id": "TextBack", "type": "panel", "style": "plaque", "rect": [32, 32, 718, 102],
     "fill": PARCHMENT, "radius": 12},
    {"id": "ImageBack", "type": "panel", "style": "bevel", "rect": [42, 108, 708, 468],
     "fill": "#1b1b1f"},
    {"id": "ImageBack/CardImage", "type": "image", "rect": [53, 119, 698, 458], "source": "art"},
]

UNIT_TEMPLATE = {
    "name": "Unit",
    "size": list(config.TEMPLATE_SIZE),
    "base_background": "Background",
    "name_label": "TextBack",
    "affinity_backdrop": "Frame",
    "required_roles": ["name", "description", "attack", "defense", "level", "tags"],
    "elements": _COMMON_TOP + [
        {"id": "TextBack/CardName", "type": "text", "rect": [52, 44, 630, 92], "size": 34},
        {"id": "LevelBack", "type": "panel", "style": "flat", "rect": [646, 40, 708, 94],
         "fill": "#1b1b1f", "radius": 26},
        {"id": "LevelBack/CardLevel", "type": "text", "rect": [650, 44, 704, 90], "size": 30,
         "color": "#ffffff", "align": "center"},
        {"id": "TagsBack", "type": "panel", "style": "plaque", "rect": [32, 476, 718, 524],
         "fill": PARCHMENT, "radius": 10},
        {"id": "TagsBack/CardTags", "type": "text", "rect": [52, 480, 650, 520], "size": 26},
        {"id": "AffinitySymbol", "type": "image", "rect": [664, 478, 712, 522], "source": "affinity_icon"},
        {"id": "DescriptionBack", "type": "panel", "style": "plaque", "rect": [32, 532, 718, 930],
         "fill": PARCHMENT, "radius": 16},
        {"id": "DescriptionBack/CardDescription", "type": "text", "rect": [52, 550, 698, 914],
         "size": 25, "font": "regular", "wrap": True},
        {"id": "AttackBack", "type": "panel", "style": "plaque", "rect": [170, 946, 360, 1004],
         "fill": PARCHMENT, "radius": 14},
        {"id": "AttackBack/CardAttack", "type": "text", "rect": [180, 952, 350, 998], "size": 32,
         "align": "center"},
        {"id": "DefenseBack", "type": "panel", "style": "plaque", "rect": [390, 946, 580, 1004],
         "fill": PARCHMENT, "radius": 14},
        {"id": "DefenseBack/CardDefense", "type": "text", "rect": [400, 952, 570, 998], "size": 32,
         "align": "center"},
    ],
}

SPELL_TEMPLATE = {
    "name": "Spell",
    "size": list(config.TEMPLATE_SIZE),
    "base_background": "Background",
    "name_label": "TextBack",
    "affinity_backdrop": "Frame",
    "required_roles": ["name", "description", "subtype", "condition"],
    "elements": _COMMON_TOP + [
        {"id": "TextBack/CardName", "type": "text", "rect": [52, 44, 698, 92], "size": 34},
        {"id": "SpellTypeBack", "type": "panel", "style": "plaque", "rect": [32, 476, 718, 524],
         "fill": PARCHMENT, "radius": 10},
        {"id": "SpellTypeBack/CardSpellType", "type": "text", "rect": [52, 480, 650, 520], "size": 26},
        {"id": "AffinitySymbol", "type": "image", "rect": [664, 478, 712, 522], "source": "affinity_icon"},
        {"id": "DescriptionBack", "type": "panel", "style": "plaque", "rect": [32, 532, 718, 880],
         "fill": PARCHMENT, "radius": 16},
        {"id": "DescriptionBack/CardDescription", "type": "text", "rect": [52, 550, 698, 864],
         "size": 25, "font": "regular", "wrap": True},
        {"id": "ConditionBack", "type": "panel", "style": "plaque", "rect": [32, 892, 718, 1004],
         "fill": "#e4d9bb", "radius": 14},
        {"id": "ConditionBack/CardCondition", "type": "text", "rect": [52, 912, 698, 984],
         "size": 26, "font": "italic", "align": "center"},
    ],
}
