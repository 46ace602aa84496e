"""
Batch export entry points.

``export_cards`` writes one PNG per card, ``export_sheets`` packs the same
renders into print sheets, and ``pack_folder`` packs card PNGs that already
exist on disk. Missing inputs raise :class:`InputNotFoundError` before any
work starts; problems with single cards end up in the report and the batch
carries on.
"""
import glob
import logging
import os
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from . import config
from .binder import bind_card
from .errors import CardPressError, Diagnostics, InputNotFoundError
from .rasterizer import RenderContext, encode_png, load_card_art, rasterize
from .records import STANDARD_SCHEMA, CardRecord, TableSchema, load_card_table
from .sheets import SheetPacker, sheet_path
from .templates import TemplateSet
from .themes import AffinityMap, RarityColorMap, default_affinity_map, default_rarity_map

logger = logging.getLogger(__name__)


@dataclass
class ExportReport:
    records: int = 0
    written: List[str] = field(default_factory=list)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    @property
    def errors(self):
        return self.diagnostics.errors

    @property
    def warnings(self):
        return self.diagnostics.warnings

    @property
    def ok(self):
        return not self.errors

    def summary(self):
        return (f"{self.records} card(s) parsed, {len(self.written)} file(s) written, "
                f"{len(self.errors)} error(s), {len(self.warnings)} warning(s)")


def card_filename(name):
    return name.replace("/", "_").replace("\\", "_") + ".png"


class CardRenderer:
    """Everything needed to turn a record into a card image."""

    def __init__(self, templates: Optional[TemplateSet] = None,
                 affinities: Optional[AffinityMap] = None,
                 rarities: Optional[RarityColorMap] = None,
                 card_size=config.CARD_SIZE, image_folder=None):
        self.templates = templates or TemplateSet.builtin()
        self.affinities = affinities or default_affinity_map()
        self.rarities = rarities or default_rarity_map()
        self.card_size = tuple(card_size)
        self.image_folder = image_folder

    def check_inputs(self):
        if self.image_folder and not os.path.isdir(self.image_folder):
            raise InputNotFoundError(self.image_folder, "image folder")

    def render(self, record: CardRecord, diagnostics: Optional[Diagnostics] = None) -> Image.Image:
        template = self.templates.get(record.kind)
        affinity = self.affinities.resolve(record.affinity)
        rarity = self.rarities.resolve(record.rarity)
        with RenderContext(template.size) as ctx:
            art = ctx.track(load_card_art(self.image_folder, record.name))
            if art is None and self.image_folder and diagnostics is not None:
                diagnostics.warning(record.name, "no source image found; rendering without art")
            bound = bind_card(template, record, affinity=affinity, rarity=rarity, art=art)
            return rasterize(bound, ctx, self.card_size)

    def render_all(self, records: List[CardRecord],
                   diagnostics: Diagnostics) -> Iterator[Tuple[CardRecord, Image.Image]]:
        """Yield ``(record, image)`` in order, skipping cards that fail to render."""
        total = len(records)
        for i, record in enumerate(records):
            logger.info(f"Card {i+1}/{total}: {record.name}")
            try:
                image = self.render(record, diagnostics)
            except (CardPressError, OSError, ValueError) as e:
                diagnostics.error(record.name, f"card skipped: {e}")
                continue
            except Exception as e:
                logger.exception(f"Unexpected failure rendering '{record.name}'")
                diagnostics.error(record.name, f"card skipped: {type(e).__name__}: {e}")
                continue
            yield record, image


def _prepare(csv_path, output_folder, renderer, schema, report) -> List[CardRecord]:
    if not os.path.isfile(csv_path):
        raise InputNotFoundError(csv_path, "card table")
    renderer.check_inputs()
    records = load_card_table(csv_path, schema=schema, diagnostics=report.diagnostics)
    report.records = len(records)
    os.makedirs(output_folder, exist_ok=True)
    return records


def export_cards(csv_path, output_folder, renderer: Optional[CardRenderer] = None,
                 schema: TableSchema = STANDARD_SCHEMA, dpi=config.DPI) -> ExportReport:
    """Render every card in ``csv_path`` to ``<output_folder>/<name>.png``."""
    renderer = renderer or CardRenderer()
    report = ExportReport()
    records = _prepare(csv_path, output_folder, renderer, schema, report)

    for record, image in renderer.render_all(records, report.diagnostics):
        path = os.path.join(output_folder, card_filename(record.name))
        try:
            encode_png(image, path, dpi=dpi)
        except (OSError, ValueError) as e:
            report.diagnostics.error(record.name, f"could not write {path}: {e}")
            continue
        finally:
            image.close()
        report.written.append(path)

    logger.info(f"Card export finished: {report.summary()}")
    return report


def _sheet_writer(output_folder, report, dpi):
    def save(sheet, number):
        path = sheet_path(output_folder, number)
        try:
            encode_png(sheet, path, dpi=dpi)
        except (OSError, ValueError) as e:
            report.diagnostics.error(f"Sheet {number}", f"could not write {path}: {e}")
            return
        report.written.append(path)
        logger.info(f"Saved sheet: {path}")
    return save


def export_sheets(csv_path, output_folder, renderer: Optional[CardRenderer] = None,
                  rows=config.SHEET_ROWS, cols=config.SHEET_COLS,
                  schema: TableSchema = STANDARD_SCHEMA, dpi=config.DPI) -> ExportReport:
    """Render every card in ``csv_path`` and pack them, in table order, into ``Sheet_<N>.png``."""
    renderer = renderer or CardRenderer()
    report = ExportReport()
    packer = SheetPacker(rows, cols, renderer.card_size, _sheet_writer(output_folder, report, dpi))
    records = _prepare(csv_path, output_folder, renderer, schema, report)

    for _, image in renderer.render_all(records, report.diagnostics):
        try:
            packer.add(image)
        finally:
            image.close()
    packer.finish()

    logger.info(f"Sheet export finished: {report.summary()}")
    return report


def pack_folder(input_folder, output_folder, rows=config.SHEET_ROWS, cols=config.SHEET_COLS,
                card_size=config.CARD_SIZE, dpi=config.DPI) -> ExportReport:
    """Pack existing ``*.png`` card images (sorted by file name) into sheets."""
    if not os.path.isdir(input_folder):
        raise InputNotFoundError(input_folder, "input folder")
    report = ExportReport()
    files = sorted(glob.glob(os.path.join(input_folder, "*.png")))
    report.records = len(files)
    if not files:
        report.diagnostics.error(input_folder, "no PNG files found")
        return report

    os.makedirs(output_folder, exist_ok=True)
    card_size = tuple(card_size)
    packer = SheetPacker(rows, cols, card_size, _sheet_writer(output_folder, report, dpi))
    for path in files:
        try:
            with Image.open(path) as img:
                card = img.convert("RGBA")
        except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as e:
            report.diagnostics.error(os.path.basename(path), f"unreadable image skipped: {e}")
            continue
        if card.size != card_size:
            report.diagnostics.warning(os.path.basename(path), f"resized from {card.size} to {card_size}")
            resized = card.resize(card_size, Image.Resampling.LANCZOS)
            card.close()
            card = resized
        try:
            packer.add(card)
        finally:
            card.close()
    packer.finish()

    logger.info(f"Folder packing finished: {report.summary()}")
    return report
