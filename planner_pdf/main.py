"""Command-line entry point: render a plan record stored as JSON."""

import argparse
import json
import logging
from dataclasses import replace
from pathlib import Path

from planner_pdf import log
from planner_pdf.assembler import DocumentAssembler
from planner_pdf.config import DEFAULT_BRANDING
from planner_pdf.errors import PlannerPdfError
from planner_pdf.sections import SECTION_ORDER

LOGGER = log.get_logger(__name__)


def load_plan(plan_path):
    """Read a plan record; the top level must be a JSON object."""
    with plan_path.open(encoding='utf-8') as handle:
        plan = json.load(handle)
    if not isinstance(plan, dict):
        raise ValueError(f'{plan_path} does not contain a JSON object')
    return plan


def load_branding(logo_path):
    if logo_path is None:
        return DEFAULT_BRANDING
    return replace(DEFAULT_BRANDING, logo=logo_path.read_bytes())


def render_plan(plan_path, output_path, sections, prepared_by=None, logo_path=None, draft=False):
    """Render ``plan_path`` into ``output_path`` and return the finished document."""
    if not plan_path.exists():
        raise FileNotFoundError(f'Plan file not found: {plan_path}')

    LOGGER.info('Loading plan record from %s', plan_path.name)
    plan = load_plan(plan_path)
    assembler = DocumentAssembler(plan, sections, prepared_by_name=prepared_by,
                                  branding=load_branding(logo_path), draft=draft)
    document = assembler.generate()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(document.data)
    LOGGER.info('Wrote %d pages to %s', document.page_count, output_path)
    return document


def build_parser():
    parser = argparse.ArgumentParser(
        prog='planner_pdf',
        description='Render a final wishes plan record into a paginated PDF',
    )
    parser.add_argument('plan', help='Path to the plan record (.json)')
    parser.add_argument('--sections', nargs='+', default=list(SECTION_ORDER),
                        help='Section identifiers to include (default: all)')
    parser.add_argument('-o', '--output', help='PDF file to write (default: plan path with .pdf)')
    parser.add_argument('--prepared-by', help='Name printed on the cover as the preparer')
    parser.add_argument('--logo', help='Image used as the provider logo')
    parser.add_argument('--draft', action='store_true', help='Stamp a DRAFT watermark on every page')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log layout details')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    log.configure(logging.DEBUG if args.verbose else logging.INFO)
    plan_path = Path(args.plan).resolve()
    output_path = Path(args.output).resolve() if args.output else plan_path.with_suffix('.pdf')
    try:
        render_plan(plan_path, output_path, args.sections, prepared_by=args.prepared_by,
                    logo_path=Path(args.logo) if args.logo else None, draft=args.draft)
    except (OSError, ValueError, PlannerPdfError) as exc:
        LOGGER.error('Could not render %s: %s', plan_path.name, exc)
        return 1
    return 0
