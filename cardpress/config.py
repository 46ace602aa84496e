"""
Configuration defaults for cardpress.

Everything here can be overridden through function arguments or the
command-line flags in :mod:`cardpress.cli`.
"""
import logging
import os

# Design-unit size every template is laid out in
TEMPLATE_SIZE = (750, 1050)
# Output card size in pixels (~300 dpi for 3.75x5.25")
CARD_SIZE = (1125, 1575)
DPI = 300

SHEET_ROWS = 3
SHEET_COLS = 3
SHEET_NAME_FORMAT = "Sheet_{}.png"

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp")

FONT_DIR = os.environ.get("CARDPRESS_FONT_DIR", os.path.join("source", "fonts"))
FONT_CANDIDATES = {
    "bold": ("DejaVuSerif-Bold.ttf", "DejaVuSans-Bold.ttf"),
    "regular": ("DejaVuSerif.ttf", "DejaVuSans.ttf"),
    "italic": ("DejaVuSerif-Italic.ttf", "DejaVuSans-Oblique.ttf"),
}

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def init_logging(verbose=False):
    """Initialize logging configuration"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )
