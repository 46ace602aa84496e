import argparse
import logging
from pathlib import Path
from typing import List, Optional

from . import config
from .errors import CardPressError
from .pipeline import CardRenderer, export_cards, export_sheets, pack_folder
from .records import SCHEMAS, STANDARD_SCHEMA, get_schema
from .templates import TemplateSet
from .themes import load_affinity_table, load_rarity_table

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cardpress",
        description="Render card images and print sheets from a card CSV.",
    )
    parser.add_argument(
        "--mode",
        choices=("cards", "sheets", "pack"),
        default="cards",
        help="cards: one PNG per card (default); sheets: render and pack into sheets; "
             "pack: pack existing card PNGs from --input-dir into sheets.",
    )
    parser.add_argument("--csv", type=Path, help="Card table to render (cards and sheets modes).")
    parser.add_argument("--outdir", type=Path, default=Path("release"),
                        help="Output directory (default: release).")
    parser.add_argument("--images", type=Path,
                        help="Folder with per-card art named <card name>.png/.jpg.")
    parser.add_argument("--input-dir", type=Path, help="Folder of card PNGs to pack (pack mode).")
    parser.add_argument("--width", type=int, default=config.CARD_SIZE[0],
                        help=f"Card width in pixels (default: {config.CARD_SIZE[0]}).")
    parser.add_argument("--height", type=int, default=config.CARD_SIZE[1],
                        help=f"Card height in pixels (default: {config.CARD_SIZE[1]}).")
    parser.add_argument("--grid-rows", type=int, default=config.SHEET_ROWS,
                        help=f"Cards per sheet column (default: {config.SHEET_ROWS}).")
    parser.add_argument("--grid-cols", type=int, default=config.SHEET_COLS,
                        help=f"Cards per sheet row (default: {config.SHEET_COLS}).")
    parser.add_argument("--schema", choices=sorted(SCHEMAS), default=STANDARD_SCHEMA.name,
                        help=f"Card table layout (default: {STANDARD_SCHEMA.name}).")
    parser.add_argument("--affinities", type=Path, help="Affinity theme table (name,color,icon).")
    parser.add_argument("--rarities", type=Path, help="Rarity theme table (tier,primary,secondary).")
    parser.add_argument("--templates", type=Path,
                        help="Folder with unit.json / spell.json templates (default: built-in).")
    parser.add_argument("--dpi", type=int, default=config.DPI,
                        help=f"DPI written into PNG files (default: {config.DPI}).")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.mode in ("cards", "sheets") and args.csv is None:
        parser.error(f"--csv is required in {args.mode} mode")
    if args.mode == "pack" and args.input_dir is None:
        parser.error("--input-dir is required in pack mode")
    if args.width < 1 or args.height < 1:
        parser.error("--width and --height must be positive")
    if args.grid_rows < 1 or args.grid_cols < 1:
        parser.error("--grid-rows and --grid-cols must be positive")
    return args


def build_renderer(args: argparse.Namespace) -> CardRenderer:
    return CardRenderer(
        templates=TemplateSet.from_folder(args.templates) if args.templates else None,
        affinities=load_affinity_table(args.affinities) if args.affinities else None,
        rarities=load_rarity_table(args.rarities) if args.rarities else None,
        card_size=(args.width, args.height),
        image_folder=args.images,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config.init_logging(args.verbose)
    logger.debug(f"Parsed args: {args}")

    try:
        if args.mode == "pack":
            report = pack_folder(args.input_dir, args.outdir, rows=args.grid_rows, cols=args.grid_cols,
                                 card_size=(args.width, args.height), dpi=args.dpi)
        else:
            renderer = build_renderer(args)
            schema = get_schema(args.schema)
            if args.mode == "sheets":
                report = export_sheets(args.csv, args.outdir, renderer=renderer, rows=args.grid_rows,
                                       cols=args.grid_cols, schema=schema, dpi=args.dpi)
            else:
                report = export_cards(args.csv, args.outdir, renderer=renderer, schema=schema, dpi=args.dpi)
    except CardPressError as e:
        logger.error(str(e))
        return 1

    for diagnostic in report.errors:
        print(diagnostic)
    print(report.summary())
    return 0
