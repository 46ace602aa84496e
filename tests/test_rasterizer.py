"""Tests for rasterizing bound cards."""

import pytest
from PIL import Image

from cardpress.binder import bind_card
from cardpress.errors import MissingAssetError, RenderError
from cardpress.rasterizer import RenderContext, encode_png, load_card_art, rasterize
from cardpress.records import SpellCard, UnitCard
from cardpress.templates import SPELL_TEMPLATE, UNIT_TEMPLATE, load_template
from cardpress.themes import AffinityTheme, RarityTheme


class Resource:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


@pytest.fixture(scope="module")
def unit_template():
    return load_template(UNIT_TEMPLATE)


def render(template, record, size=None, **themes):
    with RenderContext(template.size) as ctx:
        bound = bind_card(template, record, **themes)
        return rasterize(bound, ctx, size)


class TestRenderContext:
    def test_surface_is_transparent(self) -> None:
        """A fresh context holds a fully transparent RGBA surface."""
        with RenderContext((20, 10)) as ctx:
            assert ctx.active
            assert ctx.surface.mode == "RGBA"
            assert ctx.surface.getextrema()[3] == (0, 0)

    def test_resources_released_on_exit(self) -> None:
        """Tracked resources are closed when the block ends."""
        resource = Resource()
        with RenderContext((20, 10)) as ctx:
            assert ctx.track(resource) is resource
            assert ctx.track(None) is None

        assert resource.closed
        assert not ctx.active

    def test_resources_released_on_error(self) -> None:
        """Resources are closed even when rendering raises."""
        resource = Resource()
        with pytest.raises(RuntimeError):
            with RenderContext((20, 10)) as ctx:
                ctx.track(resource)
                raise RuntimeError("boom")

        assert resource.closed


class TestRasterize:
    def test_output_size_and_mode(self, unit_template) -> None:
        """The card is resized to the requested size as RGBA."""
        card = render(unit_template, UnitCard(name="Wolf", attack=2, defense=3), size=(375, 525))

        assert card.size == (375, 525)
        assert card.mode == "RGBA"

    def test_corners_stay_transparent(self, unit_template) -> None:
        """Pixels outside the rounded card body keep alpha 0."""
        card = render(unit_template, UnitCard(name="Wolf"))

        assert card.size == unit_template.size
        assert card.getpixel((0, 0))[3] == 0
        assert card.getpixel((card.width - 1, card.height - 1))[3] == 0
        assert card.getpixel((card.width // 2, card.height // 2))[3] == 255

    def test_rarity_changes_output(self, unit_template) -> None:
        """Different rarity colors produce different images."""
        plain = render(unit_template, UnitCard(name="Wolf"))
        tinted = render(unit_template, UnitCard(name="Wolf"),
                        rarity=RarityTheme(9, (255, 0, 0), (0, 0, 255)))

        assert plain.tobytes() != tinted.tobytes()

    def test_rendering_is_deterministic(self, unit_template) -> None:
        """Rendering the same card twice gives identical pixels."""
        record = UnitCard(name="Wolf", effect="Bites twice.", traits=("Beast",), attack=1)
        affinity = AffinityTheme("Sun", (217, 138, 43))

        first = render(unit_template, record, affinity=affinity)
        second = render(unit_template, record, affinity=affinity)

        assert first.tobytes() == second.tobytes()

    def test_spell_without_condition(self) -> None:
        """A spell with the condition box hidden still renders."""
        template = load_template(SPELL_TEMPLATE)

        card = render(template, SpellCard(name="Zap", effect="Deal 1."))

        assert card.size == template.size

    def test_art_is_painted(self, unit_template) -> None:
        """Card art fills its image slot."""
        art = Image.new("RGBA", (64, 64), (0, 255, 0, 255))
        with RenderContext(unit_template.size) as ctx:
            bound = bind_card(unit_template, UnitCard(name="Wolf"), art=ctx.track(art))
            card = rasterize(bound, ctx)

        r, g, b, a = card.getpixel((375, 290))
        assert (r, b, a) == (0, 0, 255)
        assert g > 250

    def test_inactive_context(self, unit_template) -> None:
        """Rasterizing outside a with-block is an error."""
        ctx = RenderContext(unit_template.size)
        bound = bind_card(unit_template, UnitCard(name="Wolf"))

        with pytest.raises(RenderError, match="not active"):
            rasterize(bound, ctx)

    def test_context_size_must_match_template(self, unit_template) -> None:
        """The context surface must be in template design units."""
        bound = bind_card(unit_template, UnitCard(name="Wolf"))

        with RenderContext((10, 10)) as ctx:
            with pytest.raises(RenderError):
                rasterize(bound, ctx)

    def test_missing_template_image(self, tmp_path) -> None:
        """A panel image that does not exist raises MissingAssetError."""
        template = load_template({
            "name": "Broken",
            "size": [100, 100],
            "elements": [{"id": "Back", "type": "panel", "rect": [0, 0, 100, 100],
                          "image": str(tmp_path / "missing.png")}],
        })

        with pytest.raises(MissingAssetError):
            render(template, UnitCard(name="Wolf"))


class TestEncodePng:
    def test_round_trip_is_lossless(self, unit_template, tmp_path) -> None:
        """Saved PNGs decode to the exact rendered pixels."""
        card = render(unit_template, UnitCard(name="Wolf"), size=(375, 525))
        path = tmp_path / "Wolf.png"

        encode_png(card, path, dpi=300)

        with Image.open(path) as reopened:
            assert reopened.mode == "RGBA"
            assert reopened.tobytes() == card.tobytes()
            assert round(reopened.info["dpi"][0]) == 300


class TestLoadCardArt:
    def test_finds_any_extension(self, tmp_path) -> None:
        """Art is looked up by card name across extensions."""
        with Image.new("RGB", (8, 8), (10, 20, 30)) as img:
            img.save(tmp_path / "Wolf.jpg")

        art = load_card_art(tmp_path, "Wolf")

        assert art is not None
        assert art.mode == "RGBA"

    def test_missing_art(self, tmp_path) -> None:
        """No matching file returns None."""
        assert load_card_art(tmp_path, "Ghost") is None
        assert load_card_art(None, "Ghost") is None

    def test_unreadable_art(self, tmp_path) -> None:
        """A corrupt image is skipped, not raised."""
        (tmp_path / "Wolf.png").write_bytes(b"not an image")

        assert load_card_art(tmp_path, "Wolf") is None

    def test_oversized_art(self, monkeypatch, tmp_path) -> None:
        """Art over Pillow's decompression-bomb limit is treated as unreadable."""
        with Image.new("RGB", (100, 100)) as img:
            img.save(tmp_path / "Wolf.png")
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

        assert load_card_art(tmp_path, "Wolf") is None
