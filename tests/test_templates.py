"""Tests for template loading and the slot role registry."""

import json

import pytest

from cardpress.errors import InputNotFoundError, MissingAssetError, TemplateError
from cardpress.records import CardKind
from cardpress.templates import (
    SPELL_TEMPLATE,
    UNIT_TEMPLATE,
    Panel,
    SlotRole,
    TemplateSet,
    TextSlot,
    load_element,
    load_template,
    load_template_file,
    match_role,
    parent_ids,
)


def minimal_template(*elements, **extra):
    definition = {"name": "Mini", "size": [200, 100], "elements": list(elements)}
    definition.update(extra)
    return definition


PANEL = {"id": "Back", "type": "panel", "rect": [0, 0, 200, 100], "fill": "#ffffff"}
NAME_SLOT = {"id": "Back/CardName", "type": "text", "rect": [10, 10, 110, 40]}


class TestMatchRole:
    @pytest.mark.parametrize(
        "slot_id,role",
        [
            ("TextBack/CardName", SlotRole.NAME),
            ("DescriptionBack/CardDescription", SlotRole.DESCRIPTION),
            ("EffectText", SlotRole.DESCRIPTION),
            ("AttackBack/CardAttack", SlotRole.ATTACK),
            ("DefenseBack/CardDefense", SlotRole.DEFENSE),
            ("LevelBack/CardLevel", SlotRole.LEVEL),
            ("ConditionBack/CardCondition", SlotRole.CONDITION),
            ("TagsBack/CardTags", SlotRole.TAGS),
            ("SpellTypeBack/CardSpellType", SlotRole.SUBTYPE),
        ],
    )
    def test_keywords(self, slot_id, role) -> None:
        """Slot ids map to roles by keyword."""
        assert match_role(slot_id) is role

    def test_only_leaf_segment_counts(self) -> None:
        """A keyword in a parent segment does not assign a role."""
        assert match_role("NameBack/Flourish") is None

    def test_parent_ids(self) -> None:
        """Every ancestor path is listed."""
        assert parent_ids("A/B/C") == ["A", "A/B"]
        assert parent_ids("A") == []


class TestLoadElement:
    def test_explicit_role_overrides_keyword(self) -> None:
        """A 'role' key wins over the slot id."""
        slot = load_element({"id": "CardName", "type": "text", "rect": [0, 0, 10, 10], "role": "subtype"})

        assert slot.role is SlotRole.SUBTYPE

    def test_wrapped_slot_is_not_scaled(self) -> None:
        """Wrapped text slots default to no horizontal scaling."""
        slot = load_element({"id": "CardDescription", "type": "text", "rect": [0, 0, 10, 10], "wrap": True})

        assert slot.no_scale is True

    def test_unknown_type(self) -> None:
        """An unknown element type is rejected."""
        with pytest.raises(TemplateError, match="unknown type"):
            load_element({"id": "X", "type": "sprite", "rect": [0, 0, 10, 10]})

    def test_empty_rect(self) -> None:
        """Zero-area rects are rejected."""
        with pytest.raises(TemplateError, match="empty rect"):
            load_element({"id": "X", "type": "panel", "rect": [5, 5, 5, 20]})

    def test_panel_image_relative_to_base_dir(self, tmp_path) -> None:
        """Panel images resolve against the template's folder."""
        panel = load_element(dict(PANEL, image="art/back.png"), base_dir=str(tmp_path))

        assert panel.image == str(tmp_path / "art" / "back.png")


class TestCardTemplate:
    def test_builtin_unit_registry(self) -> None:
        """The built-in Unit template has a slot for every required role."""
        template = load_template(UNIT_TEMPLATE)

        assert template.missing_roles == []
        assert template.slots_by_role[SlotRole.NAME][0].id == "TextBack/CardName"
        assert SlotRole.CONDITION not in template.slots_by_role

    def test_builtin_spell_registry(self) -> None:
        """The built-in Spell template carries a condition slot."""
        template = load_template(SPELL_TEMPLATE)

        assert template.missing_roles == []
        assert template.slots_by_role[SlotRole.CONDITION][0].id == "ConditionBack/CardCondition"

    def test_missing_required_role_is_reported(self) -> None:
        """A required role with no slot is listed, not fatal."""
        template = load_template(minimal_template(PANEL, NAME_SLOT, required_roles=["name", "attack"]))

        assert template.missing_roles == [SlotRole.ATTACK]

    def test_unmapped_slot_is_kept(self) -> None:
        """Slots matching no role stay in the template."""
        flourish = {"id": "Back/Flourish", "type": "text", "rect": [0, 50, 100, 90]}
        template = load_template(minimal_template(PANEL, flourish))

        assert template.unmapped == ["Back/Flourish"]
        assert isinstance(template.element("Back/Flourish"), TextSlot)

    def test_duplicate_ids_rejected(self) -> None:
        """Element ids must be unique."""
        with pytest.raises(TemplateError, match="duplicate"):
            load_template(minimal_template(PANEL, PANEL))

    def test_hook_must_name_panel(self) -> None:
        """Theme hooks must point at panels."""
        with pytest.raises(TemplateError, match="hook"):
            load_template(minimal_template(PANEL, NAME_SLOT, name_label="Back/CardName"))

    def test_hook_on_panel(self) -> None:
        """A hook naming a panel is accepted."""
        template = load_template(minimal_template(PANEL, NAME_SLOT, base_background="Back"))

        assert isinstance(template.element(template.base_background), Panel)

    @pytest.mark.parametrize(
        "definition",
        [
            ["not", "an", "object"],
            minimal_template(PANEL, size="big"),
            minimal_template(PANEL, size=["wide", 100]),
            minimal_template(PANEL, size=[0, 100]),
            minimal_template(dict(PANEL, radius="round")),
            minimal_template(dict(NAME_SLOT, size="large")),
            minimal_template(dict(NAME_SLOT, font="comic")),
            minimal_template(dict(PANEL, image=42)),
            minimal_template("Back"),
            minimal_template(PANEL, name_label=["Back"]),
            {"name": "Mini", "elements": {"id": "Back"}},
        ],
    )
    def test_malformed_definitions(self, definition) -> None:
        """Wrong shapes and non-numeric values raise TemplateError."""
        with pytest.raises(TemplateError):
            load_template(definition)

    def test_unknown_required_role(self) -> None:
        """Required roles must be known."""
        with pytest.raises(TemplateError, match="unknown role"):
            load_template(minimal_template(PANEL, required_roles=["mana"]))


class TestTemplateSet:
    def test_builtin_has_both_kinds(self) -> None:
        """Built-in templates exist for units and spells."""
        templates = TemplateSet.builtin()

        assert CardKind.UNIT in templates
        assert templates.get(CardKind.SPELL).name == "Spell"

    def test_from_folder_missing_kind(self, tmp_path) -> None:
        """A folder with only unit.json leaves spells without a template."""
        (tmp_path / "unit.json").write_text(json.dumps(UNIT_TEMPLATE))

        templates = TemplateSet.from_folder(tmp_path)

        assert CardKind.UNIT in templates
        assert CardKind.SPELL not in templates
        with pytest.raises(MissingAssetError):
            templates.get(CardKind.SPELL)

    def test_from_missing_folder(self, tmp_path) -> None:
        """A missing template folder is fatal."""
        with pytest.raises(InputNotFoundError):
            TemplateSet.from_folder(tmp_path / "nope")

    def test_invalid_json(self, tmp_path) -> None:
        """A malformed template file raises TemplateError."""
        path = tmp_path / "spell.json"
        path.write_text("{not json")

        with pytest.raises(TemplateError):
            load_template_file(path)

    def test_non_object_json(self, tmp_path) -> None:
        """A JSON file holding a list is not a template."""
        path = tmp_path / "unit.json"
        path.write_text("[1, 2, 3]")

        with pytest.raises(TemplateError):
            load_template_file(path)
