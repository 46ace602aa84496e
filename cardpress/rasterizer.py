"""
Rasterize bound cards into transparent RGBA images.

Rendering happens on the offscreen surface of a :class:`RenderContext`.
The context also owns every scratch layer, the card art and the affinity
icon used while painting; all of them are closed when the ``with`` block
ends, whether or not the render succeeded::

    with RenderContext(template.size) as ctx:
        bound = bind_card(template, record, art=ctx.track(load_card_art(folder, record.name)))
        card = rasterize(bound, ctx, (1125, 1575))
    encode_png(card, path)
    card.close()
"""
import logging
import os

from PIL import Image, UnidentifiedImageError

from . import config
from .drawing import (draw_art_bevel, draw_flat_panel, draw_frame, draw_gradient_panel,
                      draw_plaque_raised, draw_text_line, draw_wrapped_text, load_font,
                      paste_contain, paste_cover)
from .errors import CardPressError, MissingAssetError, RenderError
from .templates import ImageSlot, Panel, TextSlot

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


class RenderContext:
    """Offscreen surface plus every resource acquired while rendering one card."""

    def __init__(self, size):
        self.size = tuple(size)
        self.surface = None
        self._resources = []

    def __enter__(self):
        self.surface = Image.new("RGBA", self.size, TRANSPARENT)
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    @property
    def active(self):
        return self.surface is not None

    def track(self, resource):
        """Take ownership of ``resource`` (anything with ``close()``); ``None`` passes through."""
        if resource is not None:
            self._resources.append(resource)
        return resource

    def layer(self, size=None):
        return self.track(Image.new("RGBA", tuple(size or self.size), TRANSPARENT))

    def release(self):
        while self._resources:
            self._resources.pop().close()
        if self.surface is not None:
            self.surface.close()
            self.surface = None


def open_image(ctx, path):
    with Image.open(path) as img:
        return ctx.track(img.convert("RGBA"))


def load_card_art(folder, name, extensions=config.IMAGE_EXTENSIONS):
    """Open ``<folder>/<name>.<ext>`` for the first matching extension, or None."""
    if not folder:
        return None
    for ext in extensions:
        path = os.path.join(folder, name + ext)
        if not os.path.isfile(path):
            continue
        try:
            with Image.open(path) as img:
                return img.convert("RGBA")
        except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as e:
            logger.warning(f"Failed to open card image: {path} ({e})")
            return None
    return None


def paint_panel(ctx, surface, panel, fill):
    if panel.style == "gradient":
        draw_gradient_panel(ctx, surface, panel.rect, fill, radius=panel.radius)
    elif panel.style == "frame":
        draw_frame(ctx, surface, panel.rect, fill, radius=panel.radius)
    elif panel.style == "plaque":
        draw_plaque_raised(ctx, surface, panel.rect, fill, radius=panel.radius)
    elif panel.style == "bevel":
        draw_art_bevel(ctx, surface, panel.rect, fill)
    else:
        draw_flat_panel(ctx, surface, panel.rect, fill, radius=panel.radius)
    if panel.image:
        if not os.path.isfile(panel.image):
            raise MissingAssetError(f"Template image not found: {panel.image}")
        paste_cover(ctx, surface, panel.rect, open_image(ctx, panel.image))


def paint_image_slot(ctx, surface, slot, bound):
    if slot.source == "art":
        if bound.art is not None:
            paste_cover(ctx, surface, slot.rect, bound.art)
    elif bound.icon_path:
        paste_contain(ctx, surface, slot.rect, open_image(ctx, bound.icon_path))


def paint_text_slot(ctx, surface, slot, bound):
    bound_text = bound.texts.get(slot.id)
    if bound_text is None or not bound_text.text:
        return
    font = load_font(slot.size, slot.font)
    if slot.wrap:
        draw_wrapped_text(surface, bound_text.text, slot.rect, font, slot.color, align=slot.align)
    else:
        draw_text_line(ctx, surface, bound_text.text, slot.rect, font, slot.color,
                       scale_x=bound_text.scale_x, align=slot.align)


def rasterize(bound, ctx, size=None):
    """Paint ``bound`` on the context surface and copy it out at ``size``.

    The returned image belongs to the caller. Template problems raise
    :class:`MissingAssetError`; anything else that goes wrong while painting
    raises :class:`RenderError`.
    """
    if not ctx.active:
        raise RenderError("Render context is not active")
    template = bound.template
    if ctx.size != tuple(template.size):
        raise RenderError(f"Render context is {ctx.size}, template '{template.name}' needs {template.size}")
    size = tuple(size or template.size)
    surface = ctx.surface
    try:
        for element in template.elements:
            if bound.is_hidden(element.id):
                continue
            if isinstance(element, Panel):
                paint_panel(ctx, surface, element, bound.fill_for(element))
            elif isinstance(element, ImageSlot):
                paint_image_slot(ctx, surface, element, bound)
            elif isinstance(element, TextSlot):
                paint_text_slot(ctx, surface, element, bound)
        if surface.size == size:
            return surface.copy()
        return surface.resize(size, Image.Resampling.LANCZOS)
    except CardPressError:
        raise
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise RenderError(f"Failed to render '{bound.record.name}': {e}") from e


def encode_png(image, path, dpi=config.DPI):
    image.save(path, format="PNG", dpi=(dpi, dpi))
    logger.debug(f"Wrote {path}")
