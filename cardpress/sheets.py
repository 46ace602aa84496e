"""
Pack rendered cards into print sheets.

Cards fill a ``rows x cols`` grid left to right. Logical row 0 is the
bottom strip of the sheet: card ``i`` on a sheet lands in column
``i % cols`` and physical row ``rows - 1 - (i // cols) % rows``.
"""
import logging
import os

from PIL import Image

from . import config

logger = logging.getLogger(__name__)


def cell_origin(index, rows, cols, card_size):
    """Top-left pixel of card ``index`` on its sheet."""
    card_w, card_h = card_size
    col = index % cols
    row = (index // cols) % rows
    physical_row = rows - 1 - row
    return col * card_w, physical_row * card_h


def sheet_size(rows, cols, card_size):
    return card_size[0] * cols, card_size[1] * rows


def sheet_path(folder, number):
    return os.path.join(folder, config.SHEET_NAME_FORMAT.format(number))


class SheetPacker:
    """Paste cards onto sheets and hand each finished sheet to ``on_flush(sheet, number)``.

    A sheet is flushed when the next card would not fit, and by
    :meth:`finish` for the last, possibly partial, sheet. The packer closes
    each sheet after ``on_flush`` returns.
    """

    def __init__(self, rows, cols, card_size, on_flush):
        if rows < 1 or cols < 1:
            raise ValueError(f"Sheet grid must be at least 1x1, got {rows}x{cols}")
        self.rows = rows
        self.cols = cols
        self.card_size = tuple(card_size)
        self.on_flush = on_flush
        self.sheet = None
        self.count = 0
        self.sheets_flushed = 0

    @property
    def capacity(self):
        return self.rows * self.cols

    def add(self, card):
        if card.size != self.card_size:
            raise ValueError(f"Card is {card.size}, sheet cells are {self.card_size}")
        if self.sheet is not None and self.count >= self.capacity:
            self._flush()
        if self.sheet is None:
            self.sheet = Image.new("RGBA", sheet_size(self.rows, self.cols, self.card_size), (0, 0, 0, 0))
            self.count = 0
        if card.mode != "RGBA":
            card = card.convert("RGBA")
        self.sheet.paste(card, cell_origin(self.count, self.rows, self.cols, self.card_size))
        self.count += 1

    def finish(self):
        """Flush the current sheet if it holds any card; return the number of sheets flushed."""
        if self.sheet is not None and self.count:
            self._flush()
        return self.sheets_flushed

    def _flush(self):
        self.sheets_flushed += 1
        try:
            self.on_flush(self.sheet, self.sheets_flushed)
        finally:
            self.sheet.close()
            self.sheet = None
            self.count = 0
