# Pillow drawing helpers shared by the rasterizer.
#
# Scratch layers are taken from a render context (anything with a
# ``layer(size)`` method) so they are released together with the card.

import logging
import math
import os
from functools import lru_cache

from PIL import Image, ImageDraw, ImageFilter, ImageFont, ImageOps

from . import config

logger = logging.getLogger(__name__)

TEXT_PAD = 4


@lru_cache(maxsize=64)
def load_font(size=24, style="bold"):
    """Load a TrueType font for ``style``, falling back to Pillow's built-in face."""
    for name in config.FONT_CANDIDATES.get(style, config.FONT_CANDIDATES["bold"]):
        for candidate in (os.path.join(config.FONT_DIR, name), name):
            try:
                return ImageFont.truetype(candidate, size)
            except OSError:
                continue
    logger.debug(f"No TrueType font for style '{style}', using default font")
    return ImageFont.load_default(size=size)


def text_width(text, font):
    """Natural (unscaled) advance width of a single line of text."""
    return font.getlength(text) if text else 0.0


def line_height(font):
    bbox = font.getbbox("Hg")
    return bbox[3] - bbox[1]


def shade(rgb, factor):
    """Scale a color toward black (factor < 1) or white (factor > 1)."""
    if factor <= 1:
        return tuple(int(c * factor) for c in rgb)
    return tuple(int(c + (255 - c) * (factor - 1)) for c in rgb)


# Create a vertical gradient image from top color to bottom color
def vertical_gradient(size, top_rgb, bottom_rgb):
    w, h = size
    base = Image.new("RGB", size, color=top_rgb)
    col = Image.new("RGB", (1, h))
    for y in range(h):
        t = y / max(1, h-1)
        r = int(top_rgb[0] + (bottom_rgb[0]-top_rgb[0]) * t)
        g = int(top_rgb[1] + (bottom_rgb[1]-top_rgb[1]) * t)
        b = int(top_rgb[2] + (bottom_rgb[2]-top_rgb[2]) * t)
        col.putpixel((0, y), (r, g, b))
    base.paste(col.resize((w, h)))
    col.close()
    return base


# Create a mask for rounded rectangles
def rounded_rect_mask(size, radius):
    m = Image.new("L", size, 0)
    d = ImageDraw.Draw(m)
    d.rounded_rectangle((0, 0, size[0]-1, size[1]-1), radius=radius, fill=255)
    return m


def _rect_size(rect):
    x0, y0, x1, y1 = rect
    return x1 - x0, y1 - y0


def draw_gradient_panel(ctx, base, rect, fill, radius=0):
    """Full-bleed vertical gradient from ``fill`` down to a darker shade."""
    w, h = _rect_size(rect)
    grad = ctx.track(vertical_gradient((w, h), fill, shade(fill, 0.4)).convert("RGBA"))
    mask = ctx.track(rounded_rect_mask((w, h), radius)) if radius else None
    base.paste(grad, rect[:2], mask)


# Draw the card frame: gradient body, dark outline and a light inner edge
def draw_frame(ctx, base, rect, fill, radius=30):
    w, h = _rect_size(rect)
    body = ctx.track(vertical_gradient((w, h), shade(fill, 1.15), shade(fill, 0.55)).convert("RGBA"))
    mask = ctx.track(rounded_rect_mask((w, h), radius))
    layer = ctx.layer(base.size)
    layer.paste(body, rect[:2], mask)
    d = ImageDraw.Draw(layer, "RGBA")
    x0, y0, x1, y1 = rect
    d.rounded_rectangle((x0, y0, x1-1, y1-1), radius=radius, outline=(0, 0, 0, 220), width=2)
    d.rounded_rectangle((x0+2, y0+2, x1-3, y1-3), radius=max(1, radius-2), outline=(255, 255, 255, 80), width=2)
    base.alpha_composite(layer)


# Draw a raised plaque with shadow and border
def draw_plaque_raised(ctx, base, rect, fill, radius=12, elevation=10):
    x0, y0, x1, y1 = rect
    w, h = x1-x0, y1-y0
    m = ctx.track(rounded_rect_mask((w, h), radius))

    shadow = ctx.layer(base.size)
    shcut = ctx.track(Image.new("RGBA", (w, h), (0, 0, 0, 160)))
    shadow.paste(shcut, (x0 + elevation//2, y0 + elevation), m)
    shadow = ctx.track(shadow.filter(ImageFilter.GaussianBlur(elevation//2 + 4)))

    body = ctx.layer(base.size)
    face = ctx.track(vertical_gradient((w, h), fill, shade(fill, 0.92)).convert("RGBA"))
    body.paste(face, (x0, y0), m)
    d = ImageDraw.Draw(body, "RGBA")
    d.rounded_rectangle((x0, y0, x1-1, y1-1), radius=radius, outline=(0, 0, 0, 220), width=2)
    for inset, color in ((3, (255, 255, 255, 140)), (5, (0, 0, 0, 90))):
        d.rounded_rectangle((x0+inset, y0+inset, x1-1-inset, y1-1-inset),
                            radius=max(1, radius-inset), outline=color, width=2)

    base.alpha_composite(shadow)
    base.alpha_composite(body)


def draw_flat_panel(ctx, base, rect, fill, radius=12):
    layer = ctx.layer(base.size)
    d = ImageDraw.Draw(layer, "RGBA")
    x0, y0, x1, y1 = rect
    d.rounded_rectangle((x0, y0, x1-1, y1-1), radius=radius, fill=fill + (255,),
                        outline=(0, 0, 0, 200), width=2)
    base.alpha_composite(layer)


# Draw a beveled border around the art region
def draw_art_bevel(ctx, base, rect, fill):
    x0, y0, x1, y1 = rect
    layer = ctx.layer(base.size)
    d = ImageDraw.Draw(layer, "RGBA")
    d.rectangle((x0, y0, x1-1, y1-1), fill=fill + (255,), outline=(0, 0, 0, 230), width=6)
    for pad, color in ((6, (255, 255, 255, 100)), (10, (0, 0, 0, 90))):
        d.rectangle((x0+pad, y0+pad, x1-1-pad, y1-1-pad), outline=color, width=2)
    base.alpha_composite(layer)


# Crop and resize an image to cover a target region
def cover_fit(image, target_w, target_h):
    iw, ih = image.size
    target_ratio = target_w / target_h
    src_ratio = iw / ih
    if src_ratio > target_ratio:
        new_w = int(ih * target_ratio)
        x0 = max(0, (iw - new_w)//2)
        image = image.crop((x0, 0, x0+new_w, ih))
    else:
        new_h = int(iw / target_ratio)
        y0 = max(0, (ih - new_h)//2)
        image = image.crop((0, y0, iw, y0+new_h))
    return image.resize((target_w, target_h), Image.Resampling.LANCZOS)


def paste_cover(ctx, base, rect, image):
    """Center-crop ``image`` to fill ``rect``."""
    w, h = _rect_size(rect)
    fitted = ctx.track(cover_fit(image.convert("RGBA"), w, h))
    base.alpha_composite(fitted, rect[:2])


def paste_contain(ctx, base, rect, image):
    """Scale ``image`` to fit inside ``rect``, centered."""
    w, h = _rect_size(rect)
    fitted = ctx.track(ImageOps.contain(image.convert("RGBA"), (w, h), Image.Resampling.LANCZOS))
    x = rect[0] + (w - fitted.width) // 2
    y = rect[1] + (h - fitted.height) // 2
    base.alpha_composite(fitted, (x, y))


def wrap_lines(text, font, max_w):
    """Greedy word wrap; explicit newlines start a new paragraph."""
    lines = []
    for para in text.split("\n"):
        words, cur = para.split(), ""
        for w in words:
            test = (cur + " " + w).strip()
            if text_width(test, font) <= max_w:
                cur = test
            else:
                if cur:
                    lines.append(cur)
                cur = w
        if cur:
            lines.append(cur)
    return lines


def _aligned_x(rect, width, align):
    x0, _, x1, _ = rect
    if align == "center":
        return x0 + (x1 - x0 - width) // 2
    if align == "right":
        return x1 - width
    return x0


def draw_text_line(ctx, base, text, rect, font, fill, scale_x=1.0, align="left"):
    """Draw one line vertically centered in ``rect``, squeezed horizontally by ``scale_x``."""
    if not text:
        return
    bbox = font.getbbox(text)
    w = int(math.ceil(max(text_width(text, font), bbox[2]))) + 2 * TEXT_PAD
    h = max(bbox[3], line_height(font)) + 2 * TEXT_PAD
    layer = ctx.layer((w, h))
    ImageDraw.Draw(layer).text((TEXT_PAD, TEXT_PAD), text, font=font, fill=fill + (255,))
    if scale_x < 1.0:
        layer = ctx.track(layer.resize((max(1, round(w * scale_x)), h), Image.Resampling.LANCZOS))
    x = _aligned_x(rect, layer.width - 2 * TEXT_PAD, align) - TEXT_PAD
    y = rect[1] + (rect[3] - rect[1] - layer.height) // 2
    base.alpha_composite(layer, (max(0, x), max(0, y)))


def draw_wrapped_text(base, text, rect, font, fill, align="left", line_spacing=4):
    """Word-wrap ``text`` inside ``rect`` from the top; lines past the bottom are dropped."""
    d = ImageDraw.Draw(base, "RGBA")
    x0, y0, x1, y1 = rect
    step = line_height(font) + line_spacing
    y = y0
    for line in wrap_lines(text, font, x1 - x0):
        if y + step > y1 + line_spacing:
            logger.debug(f"Text overflows its box, dropping from: {line!r}")
            break
        tw = int(text_width(line, font))
        d.text((_aligned_x(rect, tw, align), y), line, font=font, fill=fill + (255,))
        y += step
    return y
