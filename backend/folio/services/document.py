"""
Document model rules: username slugs, section builders and the
parse-and-validate step for loosely shaped JSON documents.

Builders apply the "drop the invalid item, keep the rest" policy for
repeated-item sections; only a header without a name rejects the whole save.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from pydantic import TypeAdapter, ValidationError

from folio.core.exceptions import SectionValidationError
from folio.schemas.portfolio import (
    SECTION_KINDS,
    AboutData,
    AboutSection,
    EducationItem,
    EducationSection,
    ExperienceItem,
    ExperienceSection,
    FooterData,
    FooterSection,
    HeaderData,
    HeaderSection,
    PortfolioDocument,
    PortfolioSection,
    SkillsSection,
    SocialLink,
    SocialsSection,
)

logger = logging.getLogger(__name__)

# Slots offered by the dashboard forms
MAX_EXPERIENCE_ITEMS = 3
MAX_EDUCATION_ITEMS = 3
MAX_SOCIAL_ITEMS = 5

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

_section_adapter = TypeAdapter(PortfolioSection)


def slugify(text: str) -> str:
    """Derive a public username from a display name."""
    slug = _NON_ALNUM.sub("-", (text or "").lower().strip())
    return slug.strip("-")


def _text(value: Any) -> str:
    """Coerce a loosely typed value to a trimmed string ("" for missing)."""
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    return value.strip()


def _optional(value: Any) -> Optional[str]:
    return _text(value) or None


def _column(values: Optional[Sequence[Any]], idx: int) -> Any:
    if values is None or idx >= len(values):
        return None
    return values[idx]


# ── Single-value sections ─────────────────────────────────────────────

def build_header(name: Any, tagline: Any = None, display_picture: Any = None) -> HeaderSection:
    name = _text(name)
    if not name:
        raise SectionValidationError("Name is required")
    return HeaderSection(
        data=HeaderData(
            name=name,
            tagline=_optional(tagline),
            display_picture=_optional(display_picture),
        )
    )


def build_about(markdown: Any) -> AboutSection:
    return AboutSection(data=AboutData(markdown=_text(markdown)))


def build_footer(text: Any) -> FooterSection:
    return FooterSection(data=FooterData(text=_text(text)))


def build_skills(raw: Union[str, Iterable[Any], None]) -> SkillsSection:
    """Skills arrive either as a comma-separated string or as a list."""
    if raw is None:
        values: List[Any] = []
    elif isinstance(raw, str):
        values = raw.split(",")
    else:
        values = list(raw)
    return SkillsSection(data=[s for s in (_text(v) for v in values) if s])


# ── Repeated-item sections ────────────────────────────────────────────

def _highlights(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return None
    cleaned = [h for h in (_text(v) for v in value) if h]
    return cleaned or None


def experience_item(company: Any, role: Any, start: Any, end: Any = None,
                    location: Any = None, highlights: Any = None) -> Optional[ExperienceItem]:
    """Return None when any of company/role/start is blank."""
    company, role, start = _text(company), _text(role), _text(start)
    if not (company and role and start):
        return None
    return ExperienceItem(
        company=company,
        role=role,
        start=start,
        end=_optional(end),
        location=_optional(location),
        highlights=_highlights(highlights),
    )


def education_item(institution: Any, degree: Any, start: Any, end: Any = None) -> Optional[EducationItem]:
    institution, start = _text(institution), _text(start)
    if not (institution and start):
        return None
    return EducationItem(institution=institution, degree=_optional(degree), start=start, end=_optional(end))


def social_link(platform: Any, url: Any) -> Optional[SocialLink]:
    platform, url = _text(platform), _text(url)
    if not (platform and url):
        return None
    return SocialLink(platform=platform, url=url)


def build_experience(companies: Sequence[Any], roles: Sequence[Any], starts: Sequence[Any],
                     ends: Optional[Sequence[Any]] = None,
                     locations: Optional[Sequence[Any]] = None) -> ExperienceSection:
    """Zip the indexed form columns (company[], role[], ...) into items."""
    items = []
    for idx in range(min(len(companies), MAX_EXPERIENCE_ITEMS)):
        item = experience_item(
            companies[idx],
            _column(roles, idx),
            _column(starts, idx),
            _column(ends, idx),
            _column(locations, idx),
        )
        if item is None:
            logger.info(f"Dropping incomplete experience slot {idx + 1}")
            continue
        items.append(item)
    return ExperienceSection(data=items)


def build_education(institutions: Sequence[Any], degrees: Optional[Sequence[Any]],
                    starts: Sequence[Any], ends: Optional[Sequence[Any]] = None) -> EducationSection:
    items = []
    for idx in range(min(len(institutions), MAX_EDUCATION_ITEMS)):
        item = education_item(institutions[idx], _column(degrees, idx), _column(starts, idx), _column(ends, idx))
        if item is None:
            logger.info(f"Dropping incomplete education slot {idx + 1}")
            continue
        items.append(item)
    return EducationSection(data=items)


def build_socials(platforms: Sequence[Any], urls: Sequence[Any]) -> SocialsSection:
    links = []
    for idx in range(min(len(platforms), MAX_SOCIAL_ITEMS)):
        link = social_link(platforms[idx], _column(urls, idx))
        if link is not None:
            links.append(link)
    return SocialsSection(data=links)


# ── Parse-and-validate for JSON documents ─────────────────────────────

@dataclass
class DocumentParseResult:
    """
    Outcome of reading an arbitrary JSON value as a portfolio document.

    Attributes:
        document: Sections that were recognised and valid, in canonical order
        unrecognized: Top-level keys that are not section kinds
        malformed: Section keys whose payload could not be used, with the reason
    """

    document: List[PortfolioSection] = field(default_factory=list)
    unrecognized: List[str] = field(default_factory=list)
    malformed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return bool(self.document)

    @property
    def kinds(self) -> List[str]:
        return [s.section for s in self.document]


def _expect_list(payload: Any, kind: str) -> list:
    if not isinstance(payload, list):
        raise SectionValidationError(f"{kind} must be a list")
    return payload


def _expect_dict(payload: Any, kind: str) -> dict:
    if not isinstance(payload, dict):
        raise SectionValidationError(f"{kind} must be an object")
    return payload


def _parse_header(payload: Any) -> HeaderSection:
    payload = _expect_dict(payload, "header")
    picture = payload.get("displayPicture", payload.get("display_picture"))
    return build_header(payload.get("name"), payload.get("tagline"), picture)


def _parse_about(payload: Any) -> AboutSection:
    if isinstance(payload, str):
        return build_about(payload)
    return build_about(_expect_dict(payload, "about").get("markdown"))


def _parse_footer(payload: Any) -> FooterSection:
    if isinstance(payload, str):
        return build_footer(payload)
    return build_footer(_expect_dict(payload, "footer").get("text"))


def _parse_skills(payload: Any) -> SkillsSection:
    if not isinstance(payload, (str, list)):
        raise SectionValidationError("skills must be a list of strings")
    return build_skills(payload)


def _parse_experience(payload: Any) -> ExperienceSection:
    items = []
    for raw in _expect_list(payload, "experience"):
        if not isinstance(raw, dict):
            continue
        item = experience_item(raw.get("company"), raw.get("role"), raw.get("start"),
                               raw.get("end"), raw.get("location"), raw.get("highlights"))
        if item is not None:
            items.append(item)
    return ExperienceSection(data=items)


def _parse_education(payload: Any) -> EducationSection:
    items = []
    for raw in _expect_list(payload, "education"):
        if not isinstance(raw, dict):
            continue
        item = education_item(raw.get("institution"), raw.get("degree"), raw.get("start"), raw.get("end"))
        if item is not None:
            items.append(item)
    return EducationSection(data=items)


def _parse_socials(payload: Any) -> SocialsSection:
    # Models sometimes answer with {"github": "https://..."} instead of a list
    if isinstance(payload, dict):
        pairs = list(payload.items())
    else:
        pairs = [
            (raw.get("platform"), raw.get("url"))
            for raw in _expect_list(payload, "socials")
            if isinstance(raw, dict)
        ]
    links = [link for link in (social_link(p, u) for p, u in pairs) if link is not None]
    return SocialsSection(data=links)


_PARSERS: Dict[str, Callable[[Any], PortfolioSection]] = {
    "header": _parse_header,
    "about": _parse_about,
    "experience": _parse_experience,
    "education": _parse_education,
    "skills": _parse_skills,
    "socials": _parse_socials,
    "footer": _parse_footer,
}


def parse_document(raw: Any) -> DocumentParseResult:
    """Read a {kind: payload} JSON object into typed sections."""
    result = DocumentParseResult()
    if not isinstance(raw, dict):
        result.malformed["document"] = "Expected a JSON object"
        return result

    result.unrecognized = [key for key in raw if key not in _PARSERS]

    for kind in SECTION_KINDS:
        if kind not in raw or raw[kind] is None:
            continue
        try:
            result.document.append(_PARSERS[kind](raw[kind]))
        except SectionValidationError as e:
            result.malformed[kind] = e.message

    return result


def find_section(document: PortfolioDocument, kind: str) -> Optional[PortfolioSection]:
    for section in document:
        if section.section == kind:
            return section
    return None


# ── Storage encoding ──────────────────────────────────────────────────

def serialize_document(document: PortfolioDocument) -> List[Dict[str, Any]]:
    return [s.model_dump(by_alias=True, exclude_none=True) for s in document]


def dump_document(document: PortfolioDocument) -> str:
    return json.dumps(serialize_document(document))


def load_document(content: Optional[str]) -> PortfolioDocument:
    """Decode the stored column, keeping every section that still validates."""
    if not content:
        return []
    try:
        raw = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"Stored portfolio content is not valid JSON: {e}")
        return []
    if not isinstance(raw, list):
        logger.error(f"Stored portfolio content is not a list: {type(raw).__name__}")
        return []

    document = []
    for entry in raw:
        try:
            document.append(_section_adapter.validate_python(entry))
        except ValidationError as e:
            logger.warning(f"Skipping invalid stored section: {e.error_count()} error(s)")
    return document
