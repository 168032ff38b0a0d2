"""Exceptions raised while assembling a planner document."""


class PlannerPdfError(Exception):
    """Base class for every error raised by this package."""


class StructuralLayoutError(PlannerPdfError):
    """The run cannot produce a complete document and must be aborted."""


class TocOverflowError(StructuralLayoutError):
    """Table of contents entries do not fit the reserved pages."""

    def __init__(self, entries, capacity):
        super().__init__(
            f'{entries} table of contents entries do not fit in {capacity} reserved rows'
        )
        self.entries = entries
        self.capacity = capacity


class LayoutSealedError(StructuralLayoutError):
    """A block was placed after the page total had been fixed."""


class PageLockedError(StructuralLayoutError):
    """A page was added, or a sealed surface drawn on, after pagination was fixed."""


class ResolverStateError(PlannerPdfError):
    """Pagination steps were invoked out of order."""

    def __init__(self, current, expected):
        super().__init__(f'pagination is {current.name}, expected {expected.name}')
        self.current = current
        self.expected = expected


class ImageEmbedError(PlannerPdfError):
    """Image bytes could not be decoded or placed on the page."""
