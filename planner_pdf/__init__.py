"""Paginated PDF rendering for final wishes plan records."""

from planner_pdf.assembler import DocumentAssembler, FinishedDocument, generate_plan_pdf
from planner_pdf.config import DEFAULT_BRANDING, Branding
from planner_pdf.errors import (
    ImageEmbedError,
    PlannerPdfError,
    ResolverStateError,
    StructuralLayoutError,
    TocOverflowError,
)
from planner_pdf.sanitizer import sanitize
from planner_pdf.sections import SECTION_PREDICATES, has_section_data, include

__all__ = [
    'Branding',
    'DEFAULT_BRANDING',
    'DocumentAssembler',
    'FinishedDocument',
    'ImageEmbedError',
    'PlannerPdfError',
    'ResolverStateError',
    'SECTION_PREDICATES',
    'StructuralLayoutError',
    'TocOverflowError',
    'generate_plan_pdf',
    'has_section_data',
    'include',
    'sanitize',
]
