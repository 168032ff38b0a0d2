"""
Typed section records, data-presence predicates and the visibility filter.

Plan records are uncurated user data: any field may be missing, mistyped or
shaped differently from what the editing UI writes. Each section is parsed
into an optional-field record first; the predicates and the document
builders only ever look at those records.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable, Tuple

from planner_pdf.log import get_logger
from planner_pdf.sanitizer import is_blank

LOGGER = get_logger(__name__)

# Keys used by older editors and exports, folded onto section identifiers
SECTION_ALIASES = {
    'instructions_notes': 'instructions',
    'personal_information': 'personal',
    'personal_profile': 'personal',
    'about_me': 'legacy',
    'life_story': 'legacy',
    'notify': 'contacts',
    'contacts_notify': 'contacts',
    'service_providers': 'vendors',
    'providers': 'vendors',
    'checklists': 'checklist',
    'funeral_wishes': 'funeral',
    'financial_life': 'financial',
    'insurance_policies': 'insurance',
    'properties': 'property',
    'valuables': 'property',
    'digital_accounts': 'digital',
    'digital_assets': 'digital',
    'online_accounts': 'digital',
    'legal_documents': 'legal',
    'messages_to_loved_ones': 'messages',
    'travel_info': 'travel',
    'away_from_home': 'travel',
}


# ─── COERCION ───

def text(value):
    """Trimmed string for scalar values; empty for anything else."""
    if isinstance(value, bool) or value is None:
        return ''
    if isinstance(value, (str, int, float)):
        return str(value).strip()
    return ''


def flag(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', 'y', '1')
    return False


def mapping(value):
    return value if isinstance(value, Mapping) else {}


def first_text(source, *keys):
    for key in keys:
        value = text(source.get(key))
        if value:
            return value
    return ''


def filled(*values):
    return any(not is_blank(v) for v in values)


def parse_rows(value, parse_row, section):
    """Parse a list of row mappings, skipping rows that cannot be read."""
    if not isinstance(value, (list, tuple)):
        return []
    rows = []
    for index, raw in enumerate(value):
        if not isinstance(raw, Mapping):
            LOGGER.warning('Skipping %s row %d: expected a mapping, got %s',
                           section, index, type(raw).__name__)
            continue
        try:
            rows.append(parse_row(raw))
        except (TypeError, ValueError, AttributeError, KeyError) as exc:
            LOGGER.warning('Skipping malformed %s row %d: %s', section, index, exc)
    return rows


def _plan(plan):
    return plan if isinstance(plan, Mapping) else {}


def _section_source(plan, *keys):
    for key in keys:
        if key in plan and plan[key] is not None:
            return plan[key]
    return None


# ─── SECTION RECORDS ───

@dataclass(frozen=True)
class Instructions:
    notes: str = ''


@dataclass(frozen=True)
class PersonalProfile:
    full_name: str = ''
    nicknames: str = ''
    maiden_name: str = ''
    birthplace: str = ''
    citizenship: str = ''
    address: str = ''
    phone: str = ''
    email: str = ''
    marital_status: str = ''
    partner_name: str = ''
    religion: str = ''
    father_name: str = ''
    mother_name: str = ''
    children: Tuple[str, ...] = ()

    def values(self):
        return (
            self.full_name, self.nicknames, self.maiden_name, self.birthplace,
            self.citizenship, self.address, self.phone, self.email,
            self.marital_status, self.partner_name, self.religion,
            self.father_name, self.mother_name,
        ) + self.children


@dataclass(frozen=True)
class Legacy:
    life_story: str = ''
    hobbies: str = ''
    accomplishments: str = ''
    remembered: str = ''


@dataclass(frozen=True)
class ContactRow:
    name: str = ''
    relationship: str = ''
    contact: str = ''


@dataclass(frozen=True)
class VendorRow:
    name: str = ''
    service: str = ''
    contact: str = ''
    notes: str = ''


@dataclass(frozen=True)
class ChecklistEntry:
    text: str = ''
    done: bool = False


DISPOSITION_FLAGS = (
    ('burial', 'Burial'),
    ('cremation', 'Cremation'),
    ('natural_burial', 'Natural burial'),
    ('mausoleum', 'Mausoleum'),
    ('body_donation', 'Body donation'),
    ('unsure', 'Undecided'),
)


@dataclass(frozen=True)
class FuneralWishes:
    dispositions: Tuple[Tuple[str, bool], ...] = ()
    service_type: str = ''
    funeral_home: str = ''
    cemetery: str = ''
    officiant: str = ''
    music: str = ''
    readings: str = ''
    flowers_or_donations: str = ''
    clothing: str = ''
    burial_notes: str = ''
    cremation_notes: str = ''
    other_wishes: str = ''
    notes: str = ''

    def text_values(self):
        return (
            self.service_type, self.funeral_home, self.cemetery, self.officiant,
            self.music, self.readings, self.flowers_or_donations, self.clothing,
            self.burial_notes, self.cremation_notes, self.other_wishes, self.notes,
        )


@dataclass(frozen=True)
class AccountRow:
    type: str = ''
    institution: str = ''
    details: str = ''


@dataclass(frozen=True)
class FinancialLife:
    accounts: Tuple[AccountRow, ...] = ()
    safe_deposit_details: str = ''
    crypto_details: str = ''
    business_details: str = ''
    debts_details: str = ''


@dataclass(frozen=True)
class PolicyRow:
    type: str = ''
    company: str = ''
    policy_number: str = ''
    beneficiary: str = ''


@dataclass(frozen=True)
class InsuranceCoverage:
    policies: Tuple[PolicyRow, ...] = ()
    notes: str = ''


PROPERTY_FLAGS = (
    ('has_primary_home', 'Primary home'),
    ('has_vacation_home', 'Vacation home'),
    ('has_investment', 'Investment property'),
    ('has_land', 'Land'),
    ('has_vehicles', 'Vehicles'),
    ('has_boats_rvs', 'Boats or RVs'),
    ('has_business', 'Business property'),
    ('has_valuables', 'Valuables and collectibles'),
)


@dataclass(frozen=True)
class PropertyItem:
    type: str = ''
    description: str = ''
    location: str = ''
    document: object = None


@dataclass(frozen=True)
class PropertyHoldings:
    owned: Tuple[Tuple[str, bool], ...] = ()
    items: Tuple[PropertyItem, ...] = ()
    notes: str = ''


@dataclass(frozen=True)
class PetRow:
    name: str = ''
    type: str = ''
    caretaker: str = ''
    instructions: str = ''


@dataclass(frozen=True)
class PetCare:
    pets: Tuple[PetRow, ...] = ()
    notes: str = ''


DIGITAL_FLAGS = (
    ('has_social_media', 'Social media'),
    ('has_email', 'Email'),
    ('has_cloud_storage', 'Cloud storage'),
    ('has_streaming', 'Streaming services'),
    ('has_shopping', 'Shopping accounts'),
    ('has_photo_sites', 'Photo sites'),
    ('has_domains', 'Domains and websites'),
    ('has_password_manager', 'Password manager'),
)


@dataclass(frozen=True)
class PhoneRow:
    carrier: str = ''
    number: str = ''
    access: str = ''


@dataclass(frozen=True)
class DigitalAccount:
    platform: str = ''
    username: str = ''
    wishes: str = ''


@dataclass(frozen=True)
class DigitalLife:
    assets: Tuple[Tuple[str, bool], ...] = ()
    phones: Tuple[PhoneRow, ...] = ()
    accounts: Tuple[DigitalAccount, ...] = ()
    password_manager_info: str = ''
    notes: str = ''


LEGAL_DOCUMENTS = (
    ('will', 'Will'),
    ('trust', 'Trust'),
    ('poa', 'Power of attorney'),
    ('advance_directive', 'Advance directive'),
)


@dataclass(frozen=True)
class LegalDocument:
    key: str
    label: str
    exists: bool = False
    details: str = ''


@dataclass(frozen=True)
class LegalAffairs:
    documents: Tuple[LegalDocument, ...] = ()
    notes: str = ''


@dataclass(frozen=True)
class MessageRow:
    recipients: str = ''
    text_message: str = ''
    audio_url: str = ''
    video_url: str = ''


@dataclass(frozen=True)
class Messages:
    messages: Tuple[MessageRow, ...] = ()
    general: str = ''


TRAVEL_FIELDS = (
    ('emergency_contact', 'Emergency contact', ('emergencyContact', 'emergency_contact')),
    ('emergency_phone', 'Emergency phone', ('emergencyContactPhone', 'emergency_contact_phone')),
    ('insurance', 'Travel insurance', ('travelInsurance', 'travel_insurance')),
    ('policy_number', 'Policy number', ('insurancePolicy', 'insurance_policy')),
    ('passport_location', 'Passport location', ('passportLocation', 'passport_location')),
    ('medical_info', 'Medical info', ('medicalInfo', 'medical_info')),
    ('medications', 'Medications', ('medications',)),
    ('allergies', 'Allergies', ('allergies',)),
    ('doctor_contact', 'Doctor contact', ('doctorContact', 'doctor_contact')),
)


@dataclass(frozen=True)
class TravelPlans:
    emergency_contact: str = ''
    emergency_phone: str = ''
    insurance: str = ''
    policy_number: str = ''
    passport_location: str = ''
    medical_info: str = ''
    medications: str = ''
    allergies: str = ''
    doctor_contact: str = ''
    notes: str = ''

    def fields(self):
        """``(label, value)`` for each travel detail, in display order."""
        return tuple((label, getattr(self, name)) for name, label, _ in TRAVEL_FIELDS)


@dataclass(frozen=True)
class RevisionRow:
    date: str = ''
    prepared_by: str = ''
    notes: str = ''
    signature: object = None


# ─── PARSERS ───

def parse_instructions(plan):
    plan = _plan(plan)
    source = _section_source(plan, 'instructions', 'instructions_notes')
    if isinstance(source, Mapping):
        return Instructions(first_text(source, 'notes', 'text'))
    return Instructions(text(source))


def parse_personal(plan):
    plan = _plan(plan)
    profile = mapping(_section_source(plan, 'personal', 'personal_profile'))
    address = text(profile.get('address'))
    if not address:
        locality = ', '.join(
            part for part in (text(profile.get(k)) for k in ('city', 'state', 'zip')) if part
        )
        parts = [text(profile.get('address_line1')), text(profile.get('address_line2')),
                 locality, text(profile.get('country'))]
        address = ', '.join(part for part in parts if part)
    children = profile.get('children') or profile.get('child_names') or []
    names = []
    if isinstance(children, (list, tuple)):
        for child in children:
            if isinstance(child, Mapping):
                child = ' - '.join(
                    part for part in (text(child.get(k)) for k in ('name', 'phone', 'email')) if part
                )
            name = text(child)
            if name:
                names.append(name)
    return PersonalProfile(
        full_name=first_text(profile, 'full_name', 'legal_name'),
        nicknames=text(profile.get('nicknames')),
        maiden_name=text(profile.get('maiden_name')),
        birthplace=first_text(profile, 'birthplace', 'place_of_birth'),
        citizenship=text(profile.get('citizenship')),
        address=address,
        phone=text(profile.get('phone')),
        email=text(profile.get('email')),
        marital_status=text(profile.get('marital_status')),
        partner_name=first_text(profile, 'partner_name', 'spouse_name'),
        religion=text(profile.get('religion')),
        father_name=text(profile.get('father_name')),
        mother_name=text(profile.get('mother_name')),
        children=tuple(names),
    )


def parse_legacy(plan):
    plan = _plan(plan)
    legacy = _section_source(plan, 'legacy')
    if isinstance(legacy, str):
        return Legacy(life_story=text(legacy))
    legacy = mapping(legacy)
    return Legacy(
        life_story=first_text(legacy, 'life_story', 'story') or text(plan.get('about_me_notes')),
        hobbies=text(legacy.get('hobbies')),
        accomplishments=text(legacy.get('accomplishments')),
        remembered=text(legacy.get('remembered')),
    )


def _contact_row(raw):
    return ContactRow(
        name=text(raw.get('name')),
        relationship=first_text(raw, 'relationship', 'role_or_relationship', 'role'),
        contact=first_text(raw, 'contact', 'phone', 'email'),
    )


# Professionals belong under service providers, never in the notify list
NON_PERSON_ROLES = frozenset((
    'attorney', 'accountant', 'financial_advisor', 'insurance_agent',
    'funeral_home', 'cemetery', 'church', 'hospice', 'medical_provider',
))


def is_person_contact(raw):
    """True for family and friends; rows without a ``contact_type`` count as people."""
    kind = text(raw.get('contact_type')).lower()
    if kind and kind != 'person':
        return False
    role = first_text(raw, 'role_or_relationship', 'role').lower().replace(' ', '_')
    return role not in NON_PERSON_ROLES


def _row_list(value):
    return list(value) if isinstance(value, (list, tuple)) else []


def parse_contacts(plan):
    """People to notify, from the legacy list followed by the unified contact book."""
    plan = _plan(plan)
    unified = plan.get('contacts')
    if isinstance(unified, Mapping):
        unified = unified.get('contacts')
    merged = _row_list(plan.get('contacts_notify')) + _row_list(unified)
    people = [raw for raw in merged if not isinstance(raw, Mapping) or is_person_contact(raw)]
    if len(people) < len(merged):
        LOGGER.debug('Left %d non-person contact(s) out of the notify list',
                     len(merged) - len(people))
    return tuple(parse_rows(people, _contact_row, 'contacts'))


def _vendor_row(raw):
    return VendorRow(
        name=first_text(raw, 'name', 'business_name', 'company'),
        service=first_text(raw, 'service', 'type', 'category'),
        contact=first_text(raw, 'contact', 'phone', 'email'),
        notes=text(raw.get('notes')),
    )


def parse_vendors(plan):
    plan = _plan(plan)
    return tuple(parse_rows(_section_source(plan, 'vendors', 'service_providers'),
                            _vendor_row, 'vendors'))


def parse_checklist(plan):
    plan = _plan(plan)
    source = _section_source(plan, 'checklist', 'checklists')
    if isinstance(source, Mapping):
        source = source.get('items')
    if not isinstance(source, (list, tuple)):
        return ()
    entries = []
    for index, raw in enumerate(source):
        if isinstance(raw, Mapping):
            entries.append(ChecklistEntry(first_text(raw, 'text', 'label', 'item'),
                                          flag(raw.get('done', raw.get('checked')))))
        elif text(raw):
            entries.append(ChecklistEntry(text(raw)))
        else:
            LOGGER.debug('Ignoring empty checklist item %d', index)
    return tuple(entries)


def parse_funeral(plan):
    plan = _plan(plan)
    funeral = mapping(_section_source(plan, 'funeral', 'funeral_wishes'))
    funeral_home = ' - '.join(part for part in (
        first_text(funeral, 'funeral_home_name', 'funeral_home'),
        text(funeral.get('funeral_home_phone')),
    ) if part)
    cemetery = ' - '.join(part for part in (
        text(funeral.get('cemetery_name')), text(funeral.get('cemetery_location')),
    ) if part)
    return FuneralWishes(
        dispositions=tuple((label, flag(funeral.get(key))) for key, label in DISPOSITION_FLAGS),
        service_type=text(funeral.get('service_type')),
        funeral_home=funeral_home,
        cemetery=cemetery,
        officiant=text(funeral.get('officiant')),
        music=first_text(funeral, 'music_preferences', 'music'),
        readings=text(funeral.get('readings')),
        flowers_or_donations=text(funeral.get('flowers_or_donations')),
        clothing=text(funeral.get('clothing')),
        burial_notes=text(funeral.get('burial_notes')),
        cremation_notes=text(funeral.get('cremation_notes')),
        other_wishes=first_text(funeral, 'other_wishes', 'funeral_preference'),
        notes=first_text(plan, 'funeral_wishes_notes') or text(funeral.get('notes')),
    )


def _account_row(raw):
    return AccountRow(
        type=first_text(raw, 'type', 'account_type'),
        institution=first_text(raw, 'institution', 'bank_name', 'bank'),
        details=text(raw.get('details')),
    )


def parse_financial(plan):
    plan = _plan(plan)
    financial = mapping(_section_source(plan, 'financial', 'financial_life'))
    return FinancialLife(
        accounts=tuple(parse_rows(financial.get('accounts'), _account_row, 'financial')),
        safe_deposit_details=text(financial.get('safe_deposit_details')),
        crypto_details=text(financial.get('crypto_details')),
        business_details=text(financial.get('business_details')),
        debts_details=text(financial.get('debts_details')),
    )


def _policy_row(raw):
    return PolicyRow(
        type=text(raw.get('type')),
        company=first_text(raw, 'company', 'provider'),
        policy_number=text(raw.get('policy_number')),
        beneficiary=text(raw.get('beneficiary')),
    )


def parse_insurance(plan):
    plan = _plan(plan)
    insurance = _section_source(plan, 'insurance', 'insurance_policies')
    if isinstance(insurance, (list, tuple)):
        insurance = {'policies': insurance}
    insurance = mapping(insurance)
    return InsuranceCoverage(
        policies=tuple(parse_rows(insurance.get('policies'), _policy_row, 'insurance')),
        notes=first_text(plan, 'insurance_notes') or text(insurance.get('notes')),
    )


def _property_item(raw):
    return PropertyItem(
        type=text(raw.get('type')),
        description=text(raw.get('description')),
        location=text(raw.get('location')),
        document=raw.get('document') or None,
    )


def parse_property(plan):
    plan = _plan(plan)
    holdings = mapping(_section_source(plan, 'property', 'properties'))
    return PropertyHoldings(
        owned=tuple((label, flag(holdings.get(key))) for key, label in PROPERTY_FLAGS),
        items=tuple(parse_rows(holdings.get('items'), _property_item, 'property')),
        notes=first_text(plan, 'property_notes') or text(holdings.get('notes')),
    )


def _pet_row(raw):
    return PetRow(
        name=text(raw.get('name')),
        type=first_text(raw, 'type', 'species'),
        caretaker=first_text(raw, 'caretaker', 'caregiver'),
        instructions=first_text(raw, 'instructions', 'care_instructions'),
    )


def parse_pets(plan):
    plan = _plan(plan)
    return PetCare(
        pets=tuple(parse_rows(_section_source(plan, 'pets'), _pet_row, 'pets')),
        notes=text(plan.get('pets_notes')),
    )


def _phone_row(raw):
    return PhoneRow(
        carrier=text(raw.get('carrier')),
        number=first_text(raw, 'number', 'phone'),
        access=first_text(raw, 'access', 'pin_location', 'access_notes'),
    )


def _digital_account(raw):
    # Passwords are never read, so they cannot reach the page
    return DigitalAccount(
        platform=first_text(raw, 'platform', 'service', 'name'),
        username=text(raw.get('username')),
        wishes=first_text(raw, 'wishes', 'action'),
    )


def parse_digital(plan):
    plan = _plan(plan)
    digital = mapping(_section_source(plan, 'digital', 'digital_assets'))
    return DigitalLife(
        assets=tuple((label, flag(digital.get(key))) for key, label in DIGITAL_FLAGS),
        phones=tuple(parse_rows(digital.get('phones'), _phone_row, 'digital')),
        accounts=tuple(parse_rows(digital.get('accounts'), _digital_account, 'digital')),
        password_manager_info=text(digital.get('password_manager_info')),
        notes=first_text(plan, 'digital_notes') or text(digital.get('notes')),
    )


def parse_legal(plan):
    plan = _plan(plan)
    legal = mapping(_section_source(plan, 'legal', 'legal_documents'))
    documents = tuple(
        LegalDocument(key, label, flag(legal.get(f'has_{key}')), text(legal.get(f'{key}_details')))
        for key, label in LEGAL_DOCUMENTS
    )
    return LegalAffairs(
        documents=documents,
        notes=first_text(plan, 'legal_notes') or text(legal.get('notes')),
    )


def _message_row(raw):
    recipients = raw.get('recipients')
    if isinstance(recipients, (list, tuple)):
        recipients = ', '.join(text(r) for r in recipients if text(r))
    return MessageRow(
        recipients=text(recipients) or first_text(raw, 'to', 'to_name'),
        text_message=first_text(raw, 'text_message', 'message', 'body'),
        audio_url=text(raw.get('audio_url')),
        video_url=text(raw.get('video_url')),
    )


def parse_messages(plan):
    plan = _plan(plan)
    source = _section_source(plan, 'messages', 'messages_to_loved_ones')
    general = text(plan.get('messages_notes'))
    if isinstance(source, Mapping):
        general = general or first_text(source, 'main_message')
        source = source.get('individual')
    return Messages(
        messages=tuple(parse_rows(source, _message_row, 'messages')),
        general=general,
    )


def parse_travel(plan):
    plan = _plan(plan)
    travel = mapping(_section_source(plan, 'travel', 'travel_info'))
    values = {name: first_text(travel, *keys) for name, _, keys in TRAVEL_FIELDS}
    return TravelPlans(notes=text(travel.get('notes')) or text(plan.get('travel_notes')), **values)


def _revision_row(raw):
    return RevisionRow(
        date=first_text(raw, 'revision_date', 'signed_at', 'date'),
        prepared_by=first_text(raw, 'prepared_by', 'signed_name', 'preparer'),
        notes=text(raw.get('notes')),
        signature=raw.get('signature_png') or raw.get('signature_image_png') or None,
    )


def parse_revisions(plan):
    """Revisions oldest first; ISO dates sort correctly as text."""
    plan = _plan(plan)
    source = plan.get('revisions')
    if source is None:
        source = mapping(plan.get('signature')).get('revisions')
    rows = parse_rows(source, _revision_row, 'revisions')
    return tuple(sorted(rows, key=lambda row: row.date))


# ─── DATA-PRESENCE PREDICATES ───

def has_instructions_data(record):
    return filled(record.notes)


def has_personal_data(record):
    return filled(*record.values())


def has_legacy_data(record):
    return filled(record.life_story, record.hobbies, record.accomplishments, record.remembered)


def has_contacts_data(rows):
    return any(filled(row.name, row.relationship, row.contact) for row in rows)


def has_vendors_data(rows):
    return any(filled(row.name, row.service, row.contact) for row in rows)


def has_checklist_data(entries):
    return any(filled(entry.text) for entry in entries)


def has_funeral_data(record):
    return any(chosen for _, chosen in record.dispositions) or filled(*record.text_values())


def has_financial_data(record):
    return (
        any(filled(a.type, a.institution, a.details) for a in record.accounts)
        or filled(record.safe_deposit_details, record.crypto_details,
                  record.business_details, record.debts_details)
    )


def has_insurance_data(record):
    return (
        any(filled(p.type, p.company, p.policy_number) for p in record.policies)
        or filled(record.notes)
    )


def has_property_data(record):
    return (
        any(owned for _, owned in record.owned)
        or any(filled(item.type, item.description) for item in record.items)
        or filled(record.notes)
    )


def has_pets_data(record):
    return any(filled(p.name, p.type, p.instructions) for p in record.pets) or filled(record.notes)


def has_digital_data(record):
    return (
        any(held for _, held in record.assets)
        or bool(record.phones)
        or bool(record.accounts)
        or filled(record.password_manager_info, record.notes)
    )


def has_legal_data(record):
    return (
        any(doc.exists or filled(doc.details) for doc in record.documents)
        or filled(record.notes)
    )


def has_messages_data(record):
    return (
        any(filled(m.recipients, m.text_message, m.audio_url, m.video_url)
            for m in record.messages)
        or filled(record.general)
    )


def has_travel_data(record):
    return filled(record.notes, *(value for _, value in record.fields()))


# ─── REGISTRY ───

@dataclass(frozen=True)
class SectionType:
    id: str
    title: str
    parse: Callable
    has_data: Callable

    def present(self, plan):
        return bool(self.has_data(self.parse(plan)))


SECTIONS = (
    SectionType('instructions', 'Instructions', parse_instructions, has_instructions_data),
    SectionType('personal', 'Personal & Family Details', parse_personal, has_personal_data),
    SectionType('legacy', 'Life Story & Legacy', parse_legacy, has_legacy_data),
    SectionType('contacts', 'Key Contacts to Notify', parse_contacts, has_contacts_data),
    SectionType('vendors', 'Service Providers', parse_vendors, has_vendors_data),
    SectionType('checklist', 'Planning Checklist', parse_checklist, has_checklist_data),
    SectionType('funeral', 'Funeral Wishes', parse_funeral, has_funeral_data),
    SectionType('financial', 'Financial Life', parse_financial, has_financial_data),
    SectionType('insurance', 'Insurance', parse_insurance, has_insurance_data),
    SectionType('property', 'Property & Valuables', parse_property, has_property_data),
    SectionType('pets', 'Pet Care', parse_pets, has_pets_data),
    SectionType('digital', 'Digital Accounts', parse_digital, has_digital_data),
    SectionType('legal', 'Legal Documents', parse_legal, has_legal_data),
    SectionType('messages', 'Messages to Loved Ones', parse_messages, has_messages_data),
    SectionType('travel', 'Travel & Away-From-Home', parse_travel, has_travel_data),
)

SECTIONS_BY_ID = {section.id: section for section in SECTIONS}
SECTION_ORDER = tuple(section.id for section in SECTIONS)

# Plan-level predicates, shared with section completeness indicators
SECTION_PREDICATES = {section.id: section.present for section in SECTIONS}


def has_section_data(section_id, plan):
    section = SECTIONS_BY_ID.get(normalize_section_id(section_id))
    return section is not None and section.present(plan)


# ─── VISIBILITY ───

def normalize_section_id(section_id):
    key = text(section_id).lower()
    return SECTION_ALIASES.get(key, key)


def normalize_visibility(visible):
    if visible is None:
        return frozenset()
    if isinstance(visible, str):
        visible = [visible]
    return frozenset(normalize_section_id(key) for key in visible if text(key))


def include(section_id, plan, visible):
    """True when the user asked for the section and it holds data worth printing."""
    section_id = normalize_section_id(section_id)
    if section_id not in normalize_visibility(visible):
        return False
    section = SECTIONS_BY_ID.get(section_id)
    if section is None:
        return False
    return section.present(plan)


def included_sections(plan, visible):
    """Sections to render, in canonical document order."""
    visible = normalize_visibility(visible)
    chosen = []
    for section in SECTIONS:
        if include(section.id, plan, visible):
            chosen.append(section)
        elif section.id in visible:
            LOGGER.info('Section %s selected but has no data; omitting it', section.id)
    unknown = sorted(visible - set(SECTION_ORDER))
    if unknown:
        LOGGER.warning('Ignoring unknown section identifiers: %s', ', '.join(unknown))
    return chosen
