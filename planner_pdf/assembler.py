"""
Planner Document Assembler
Cover, table of contents, plan sections, revisions and the media appendix.
"""

import datetime
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Tuple

from planner_pdf import config
from planner_pdf.blocks import (
    Checklist,
    ChecklistItem,
    Field,
    ImageEmbed,
    Paragraph,
    Section,
    Table,
    Title,
    WritingLines,
    fit_box,
    probe_image,
    render_block,
)
from planner_pdf.config import CONTENT_W, HEADER_RULE_Y, MARGIN, PAGE_H, PAGE_W, TOC_HEADING_Y
from planner_pdf.cursor import ContentFlowCursor, truncate_to_width
from planner_pdf.errors import PlannerPdfError
from planner_pdf.log import get_logger
from planner_pdf.pagination import PaginationResolver, draw_footer, toc_pages_needed
from planner_pdf.sanitizer import is_blank, sanitize
from planner_pdf.sections import (
    included_sections,
    normalize_visibility,
    parse_personal,
    parse_revisions,
)
from planner_pdf.surface import PageSurface
from planner_pdf.toc import TocEntry, TocRecorder

LOGGER = get_logger(__name__)

# Errors raised by bad plan data while a block is drawn; anything else aborts the run
DATA_ERRORS = (TypeError, ValueError, KeyError, AttributeError)

DOCUMENT_TITLE = 'My Final Wishes'
DOCUMENT_SUBTITLE = 'End-of-Life Planning Guide'
REVISIONS_TITLE = 'Revisions & Signatures'
APPENDIX_TITLE = 'Appendix: Stored Media'

REMINDERS = (
    'Review this plan once a year and after any major life event.',
    'Keep the signed original somewhere safe and tell your executor where it is.',
    'Give copies to the people named in this plan.',
)


@dataclass(frozen=True)
class FinishedDocument:
    data: bytes
    page_count: int
    toc_entries: Tuple[TocEntry, ...]


@dataclass(frozen=True)
class StoredMedia:
    label: str
    location: str


def is_stored_reference(value):
    """True for a link to media kept outside the plan record."""
    return isinstance(value, str) and not is_blank(value) and not value.strip().startswith('data:')


def format_date(value):
    if isinstance(value, (datetime.date, datetime.datetime)):
        return f'{value:%B} {value.day}, {value.year}'
    return sanitize(value)


class DocumentAssembler:
    """One assembly run over a single plan record."""

    def __init__(self, plan, visible_sections, prepared_by_name=None, branding=None,
                 draft=False, generated_on=None):
        self.plan = plan if isinstance(plan, Mapping) else {}
        self.visible = normalize_visibility(visible_sections)
        self.prepared_by_name = sanitize(prepared_by_name)
        self.branding = branding or config.DEFAULT_BRANDING
        self.draft = draft
        self.generated_on = generated_on or datetime.date.today()
        self.owner = sanitize(parse_personal(self.plan).full_name)

        self.surface = PageSurface(title=DOCUMENT_TITLE, author=self.branding.name)
        self.cursor = ContentFlowCursor(self.surface, on_new_page=self._draw_page_frame)
        self.toc = TocRecorder()
        self.toc_pages = []
        self.content_start = None
        self.stored_media = []
        self.logo = self._load_logo()

    def _load_logo(self):
        if not self.branding.logo:
            return None
        result = probe_image(self.branding.logo)
        if not result.ok:
            LOGGER.warning('Branding logo could not be decoded: %s', result.reason)
            return None
        return result

    # ─── PAGE FRAME ───

    def _draw_watermark(self):
        if self.draft:
            self.surface.draw_text('DRAFT', PAGE_W / 2, PAGE_H / 2, config.WATERMARK,
                                   align='center', angle=45)

    def _draw_logo(self, x, y, max_w, max_h):
        if self.logo is None:
            return
        w, h = fit_box(self.logo.size, max_w, max_h)
        self.surface.embed_image(self.logo.data, x + (max_w - w) / 2, y, w, h)

    def _draw_page_frame(self, index):
        """Header, watermark and provisional footer for a content page."""
        self._draw_watermark()
        self.surface.draw_text(sanitize(self.branding.product), MARGIN, HEADER_RULE_Y - 8,
                               config.HEADER_CAPTION)
        self._draw_logo(PAGE_W - MARGIN - 24, HEADER_RULE_Y - 30, 24, 24)
        self.surface.draw_line(MARGIN, HEADER_RULE_Y, PAGE_W - MARGIN, HEADER_RULE_Y,
                               config.HAIRLINE)
        draw_footer(self.surface, index, None, self.branding, self.owner)

    # ─── COVER & TOC ───

    def page_cover(self):
        """Cover page"""
        s = self.surface
        s.add_page()
        center = PAGE_W / 2
        self._draw_watermark()

        # Teal accent bar
        s.draw_rect(0, 0, PAGE_W, 10, config.COVER_BAR)

        s.draw_text(DOCUMENT_TITLE, center, 80, config.COVER_TITLE, align='center')
        s.draw_text(DOCUMENT_SUBTITLE, center, 110, config.COVER_SUBTITLE, align='center')
        s.draw_line(center - 60, 126, center + 60, 126, config.COVER_RULE)

        y = 170
        if self.owner:
            line = truncate_to_width(s, f'Prepared for: {self.owner}', CONTENT_W, config.COVER_NAME)
            s.draw_text(line, center, y, config.COVER_NAME, align='center')
        else:
            # Blank line for handwriting
            s.draw_text('Prepared for:', center, y, config.COVER_SUBTITLE, align='center')
            y += 20
            s.draw_line(center - 100, y, center + 100, y, config.WRITING_LINE)
        if self.prepared_by_name:
            y += 26
            line = truncate_to_width(s, f'Prepared by: {self.prepared_by_name}', CONTENT_W,
                                     config.COVER_META)
            s.draw_text(line, center, y, config.COVER_META, align='center')

        y += 50
        s.draw_text(f'Generated on: {format_date(self.generated_on)}', center, y,
                    config.COVER_META, align='center')

        # Provider block
        y += 60
        s.draw_text('Provided by:', center, y, config.BODY_BOLD, align='center')
        if self.logo is not None:
            self._draw_logo(center - 30, y + 15, 60, 60)
            y += 90
        else:
            y += 26
        s.draw_text(sanitize(self.branding.name), center, y, config.COVER_BRAND, align='center')
        if self.branding.tagline:
            y += 16
            s.draw_text(sanitize(self.branding.tagline), center, y, config.COVER_TAGLINE,
                        align='center')
        y += 20
        for line in self.branding.contact_lines():
            s.draw_text(sanitize(line), center, y, config.COVER_CONTACT, align='center')
            y += config.COVER_CONTACT.leading

    def page_toc(self, page_count):
        """Blank table of contents pages; rows are written once totals are known."""
        for number in range(page_count):
            index = self.surface.add_page()
            self.toc_pages.append(index)
            self._draw_watermark()
            heading = 'Table of Contents' if number == 0 else 'Table of Contents (continued)'
            self.surface.draw_text(heading, PAGE_W / 2, TOC_HEADING_Y, config.TOC_HEADING,
                                   align='center')
        # Sections never flow onto a TOC page
        self.cursor.fill_page()
        self.content_start = self.surface.page_count
        LOGGER.debug('Reserved %d TOC page(s)', page_count)

    # ─── PLAN SECTIONS ───

    def section_instructions(self, record):
        return [Section('Instructions for My Loved Ones', record.notes)]

    def section_personal(self, record):
        blocks = [
            Field('Full legal name', record.full_name),
            Field('Nicknames', record.nicknames),
            Field('Maiden name', record.maiden_name),
            Field('Place of birth', record.birthplace),
            Field('Citizenship', record.citizenship),
            Field('Address', record.address, mode='stacked'),
            Field('Phone', record.phone),
            Field('Email', record.email),
            Field('Marital status', record.marital_status),
            Field('Spouse or partner', record.partner_name),
            Field('Religion', record.religion),
            Field("Father's name", record.father_name),
            Field("Mother's name", record.mother_name),
        ]
        blocks.append(Table(('Children',), tuple((child,) for child in record.children),
                            min_empty_rows=2))
        return blocks

    def section_legacy(self, record):
        return [
            Section('My Life Story', record.life_story),
            Section('Hobbies & Interests', record.hobbies),
            Section('Accomplishments', record.accomplishments),
            Section('How I Want to Be Remembered', record.remembered),
        ]

    def section_contacts(self, rows):
        return [Table(
            ('Name', 'Relationship', 'Contact'),
            tuple((row.name, row.relationship, row.contact) for row in rows),
            widths=(3, 2, 3),
        )]

    def section_vendors(self, rows):
        return [Table(
            ('Provider', 'Service', 'Contact', 'Notes'),
            tuple((row.name, row.service, row.contact, row.notes) for row in rows),
            widths=(3, 2, 3, 3),
        )]

    def section_checklist(self, entries):
        return [Checklist(tuple(ChecklistItem(e.text, e.done) for e in entries if e.text))]

    def section_funeral(self, record):
        return [
            Checklist(tuple(ChecklistItem(label, chosen) for label, chosen in record.dispositions),
                      heading='Disposition Preferences'),
            Field('Type of service', record.service_type),
            Field('Funeral home', record.funeral_home),
            Field('Cemetery', record.cemetery),
            Field('Officiant', record.officiant),
            Section('Music', record.music),
            Section('Readings', record.readings),
            Section('Flowers or Donations', record.flowers_or_donations),
            Section('Clothing', record.clothing),
            Section('Burial Notes', record.burial_notes),
            Section('Cremation Notes', record.cremation_notes),
            Section('Other Wishes', record.other_wishes),
            Section('Additional Notes', record.notes),
        ]

    def section_financial(self, record):
        return [
            Table(('Account type', 'Institution', 'Details'),
                  tuple((a.type, a.institution, a.details) for a in record.accounts),
                  widths=(2, 3, 4), caption='Accounts'),
            Section('Safe Deposit Box', record.safe_deposit_details),
            Section('Cryptocurrency', record.crypto_details),
            Section('Business Interests', record.business_details),
            Section('Debts', record.debts_details),
        ]

    def section_insurance(self, record):
        return [
            Table(('Type', 'Company', 'Policy number', 'Beneficiary'),
                  tuple((p.type, p.company, p.policy_number, p.beneficiary) for p in record.policies),
                  caption='Policies'),
            Section('Insurance Notes', record.notes),
        ]

    def section_property(self, record):
        blocks = [
            Checklist(tuple(ChecklistItem(label, owned) for label, owned in record.owned),
                      heading='What I Own'),
            Table(('Type', 'Description', 'Location'),
                  tuple((i.type, i.description, i.location) for i in record.items),
                  widths=(2, 4, 3), caption='Items'),
        ]
        for item in record.items:
            if item.document is None:
                continue
            label = sanitize(f'{item.type} document'.strip()) or 'Property document'
            if is_stored_reference(item.document):
                self.stored_media.append(StoredMedia(label, sanitize(item.document)))
            else:
                blocks.append(ImageEmbed(item.document, label=label))
        blocks.append(Section('Property Notes', record.notes))
        return blocks

    def section_pets(self, record):
        blocks = [Table(('Name', 'Type', 'Caretaker'),
                        tuple((p.name, p.type, p.caretaker) for p in record.pets))]
        for pet in record.pets:
            if pet.instructions:
                blocks.append(Section(f'Care for {pet.name or pet.type or "my pet"}', pet.instructions))
        blocks.append(Section('Pet Care Notes', record.notes))
        return blocks

    def section_digital(self, record):
        return [
            Checklist(tuple(ChecklistItem(label, held) for label, held in record.assets),
                      heading='Accounts & Assets'),
            Table(('Carrier', 'Number', 'Access'),
                  tuple((p.carrier, p.number, p.access) for p in record.phones),
                  min_empty_rows=1, caption='Phones'),
            Table(('Platform', 'Username', 'Wishes'),
                  tuple((a.platform, a.username, a.wishes) for a in record.accounts),
                  caption='Online Accounts'),
            Field('Password manager', record.password_manager_info, mode='stacked'),
            Section('Digital Notes', record.notes),
        ]

    def section_legal(self, record):
        blocks = [Checklist(tuple(ChecklistItem(doc.label, doc.exists) for doc in record.documents),
                            heading='Documents in Place')]
        for doc in record.documents:
            if doc.exists or doc.details:
                blocks.append(Section(f'{doc.label} Details', doc.details))
        blocks.append(Section('Legal Notes', record.notes))
        return blocks

    def section_messages(self, record):
        blocks = [Section('To Everyone I Love', record.general)]
        for message in record.messages:
            recipient = message.recipients or 'Someone Special'
            blocks.append(Section(f'To {recipient}', message.text_message))
            for kind, url in (('Audio', message.audio_url), ('Video', message.video_url)):
                if url:
                    self.stored_media.append(StoredMedia(f'{kind} message to {recipient}', url))
                    blocks.append(Field(f'{kind} message', 'Stored online, see the appendix'))
        return blocks

    def section_travel(self, record):
        blocks = [Field(label, value) for label, value in record.fields() if value]
        blocks.append(Section('Travel Notes', record.notes))
        return blocks

    def section_revisions(self):
        revisions = parse_revisions(self.plan)
        blocks = [Title(REVISIONS_TITLE)]
        if not revisions:
            blocks.append(Section('Revision History', None,
                                  placeholder='No revisions have been recorded'))
            blocks.append(WritingLines(('Printed name:', 'Signature:', 'Date:')))
        else:
            blocks.append(Table(('Date', 'Prepared by', 'Notes'),
                                tuple((r.date, r.prepared_by, r.notes) for r in revisions),
                                widths=(2, 3, 5), caption='Revision History'))
            latest = revisions[-1]
            if is_stored_reference(latest.signature):
                self.stored_media.append(StoredMedia('Signature', sanitize(latest.signature)))
            elif latest.signature is not None:
                blocks.append(Paragraph(f'Signed by {latest.prepared_by or "the plan owner"}',
                                        config.BODY_BOLD))
                blocks.append(ImageEmbed(latest.signature, max_width=180, max_height=60,
                                         label='Signature'))
            else:
                blocks.append(WritingLines(('Signature:', 'Date:')))
        blocks.append(Checklist(tuple(ChecklistItem(text) for text in REMINDERS),
                                heading='Reminders'))
        return blocks

    def section_appendix(self):
        blocks = [Title(APPENDIX_TITLE, in_toc=False)]
        if not self.stored_media:
            blocks.append(Paragraph(
                'This plan does not refer to any audio, video or documents stored outside '
                'this printed copy.'
            ))
            return blocks
        blocks.append(Paragraph(
            'The items below are stored online and cannot be printed. Sign in to the planner '
            'to play or download them.'
        ))
        blocks.append(Table(('Item', 'Where it is stored'),
                            tuple((m.label, m.location) for m in self.stored_media),
                            widths=(2, 3), min_empty_rows=0))
        return blocks

    def build_sections(self):
        """Blocks for every included section, in document order."""
        planned = []
        for section in included_sections(self.plan, self.visible):
            builder = getattr(self, f'section_{section.id}')
            try:
                blocks = [Title(section.title)] + builder(section.parse(self.plan))
            except DATA_ERRORS as exc:
                LOGGER.warning('Skipping section %s: %s', section.id, exc)
                continue
            planned.append((section.id, blocks))
        planned.append(('revisions', self.section_revisions()))
        planned.append(('appendix', self.section_appendix()))
        return planned

    def emit(self, block, section_id):
        try:
            render_block(block, self.cursor, self.toc)
        except DATA_ERRORS as exc:
            LOGGER.warning('Skipping %s block in section %s: %s',
                           type(block).__name__, section_id, exc)

    # ═══════════════════════════════════════════════════
    # MAIN GENERATION
    # ═══════════════════════════════════════════════════

    def generate(self):
        """Lay out the whole document, backfill it and return the encoded result."""
        if self.surface.page_count:
            raise PlannerPdfError('this assembler has already produced its document')

        self.page_cover()
        planned = self.build_sections()
        LOGGER.info('Assembling sections: %s', ', '.join(section_id for section_id, _ in planned))

        titles = sum(1 for _, blocks in planned for block in blocks
                     if isinstance(block, Title) and block.in_toc)
        self.page_toc(toc_pages_needed(titles))

        for section_id, blocks in planned:
            self.cursor.start_section()
            for block in blocks:
                self.emit(block, section_id)

        resolver = PaginationResolver(self.surface, self.cursor, self.toc, self.toc_pages,
                                      self.content_start, self.branding, self.owner)
        data = resolver.resolve()
        LOGGER.info('Document generated: %d pages, %d bytes', resolver.total_pages, len(data))
        return FinishedDocument(data, resolver.total_pages, self.toc.entries)


def generate_plan_pdf(plan, visible_sections, prepared_by_name=None, branding=None,
                      draft=False, generated_on=None):
    """Render ``plan`` into PDF bytes, including only ``visible_sections``."""
    assembler = DocumentAssembler(plan, visible_sections, prepared_by_name=prepared_by_name,
                                  branding=branding, draft=draft, generated_on=generated_on)
    return assembler.generate().data
