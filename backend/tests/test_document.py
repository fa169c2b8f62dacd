"""
Document model tests: username slugs, form builders, parse-and-validate of
loose JSON, and the stored-column encoding.

Run: pytest backend/tests/test_document.py -v
"""

import json

import pytest

from folio.core.exceptions import SectionValidationError
from folio.schemas.portfolio import SECTION_KINDS
from folio.services.document import (
    MAX_EXPERIENCE_ITEMS,
    MAX_SOCIAL_ITEMS,
    build_about,
    build_education,
    build_experience,
    build_header,
    build_skills,
    build_socials,
    dump_document,
    find_section,
    load_document,
    parse_document,
    serialize_document,
    slugify,
)


# ── Username slugs ──────────────────────────────────────────────────────────

class TestSlugify:

    def test_display_name(self):
        assert slugify("Dr. Jane O'Brien  ") == "dr-jane-o-brien"

    @pytest.mark.parametrize("raw", [
        "Jane Doe", "  --Jane__Doe--  ", "ÉLodie 42", "already-a-slug", "", "!!!",
    ])
    def test_idempotent(self, raw):
        assert slugify(slugify(raw)) == slugify(raw)

    def test_only_punctuation_is_empty(self):
        assert slugify("!!!") == ""


# ── Form builders ───────────────────────────────────────────────────────────

class TestBuilders:

    def test_header_requires_name(self):
        with pytest.raises(SectionValidationError) as exc:
            build_header("   ", "tagline")
        assert exc.value.message == "Name is required"

    def test_header_blank_optionals_are_absent(self):
        section = build_header(" Jane ", "  ", "")
        assert section.data.name == "Jane"
        assert section.data.tagline is None
        assert section.data.display_picture is None

    def test_about_is_trimmed(self):
        assert build_about("  # Hi\n").data.markdown == "# Hi"

    def test_skills_from_comma_string(self):
        assert build_skills(" Python, ,Go ,SQL").data == ["Python", "Go", "SQL"]

    def test_skills_from_list(self):
        assert build_skills(["a", " ", "b"]).data == ["a", "b"]

    def test_experience_drops_incomplete_item(self):
        section = build_experience(["A", ""], ["Eng", ""], ["2020", ""])
        assert len(section.data) == 1
        assert section.data[0].company == "A"
        assert section.data[0].end is None

    def test_experience_caps_slots(self):
        n = MAX_EXPERIENCE_ITEMS + 2
        section = build_experience(["C"] * n, ["R"] * n, ["2020"] * n)
        assert len(section.data) == MAX_EXPERIENCE_ITEMS

    def test_experience_short_columns(self):
        section = build_experience(["A", "B"], ["Eng"], ["2020", "2021"])
        assert [i.company for i in section.data] == ["A"]

    def test_education_degree_optional(self):
        section = build_education(["MIT"], [""], ["2015"], ["2019"])
        assert section.data[0].degree is None
        assert section.data[0].end == "2019"

    def test_socials_drop_missing_url(self):
        section = build_socials(["github", "x"], ["https://github.com/jane", ""])
        assert [s.platform for s in section.data] == ["github"]

    def test_socials_caps_slots(self):
        n = MAX_SOCIAL_ITEMS + 1
        section = build_socials(["p"] * n, ["https://u"] * n)
        assert len(section.data) == MAX_SOCIAL_ITEMS


# ── parse_document ──────────────────────────────────────────────────────────

class TestParseDocument:

    def test_canonical_order(self):
        parsed = parse_document({
            "footer": {"text": "bye"},
            "skills": ["X"],
            "header": {"name": "A"},
        })
        assert parsed.ok
        assert parsed.kinds == ["header", "skills", "footer"]

    def test_unrecognized_keys(self):
        parsed = parse_document({"projects": [], "skills": ["X"]})
        assert parsed.unrecognized == ["projects"]
        assert parsed.kinds == ["skills"]

    def test_malformed_sections(self):
        parsed = parse_document({
            "header": {"name": ""},
            "experience": "not a list",
            "about": {"markdown": "hi"},
        })
        assert parsed.kinds == ["about"]
        assert parsed.malformed["header"] == "Name is required"
        assert "experience" in parsed.malformed

    def test_empty_object(self):
        parsed = parse_document({})
        assert not parsed.ok
        assert parsed.document == []

    def test_not_an_object(self):
        parsed = parse_document(["header"])
        assert not parsed.ok
        assert "document" in parsed.malformed

    def test_item_level_drop(self):
        parsed = parse_document({"experience": [
            {"company": "A", "role": "Eng", "start": "2020"},
            {"company": "", "role": "", "start": ""},
            "junk",
        ]})
        experience = find_section(parsed.document, "experience")
        assert len(experience.data) == 1

    def test_socials_mapping_form(self):
        parsed = parse_document({"socials": {"github": "https://github.com/a", "x": ""}})
        socials = find_section(parsed.document, "socials")
        assert [(s.platform, s.url) for s in socials.data] == [("github", "https://github.com/a")]

    def test_header_display_picture_alias(self):
        parsed = parse_document({"header": {"name": "A", "displayPicture": "https://img"}})
        assert parsed.document[0].data.display_picture == "https://img"

    def test_all_kinds_recognised(self):
        raw = {
            "header": {"name": "A"},
            "about": {"markdown": "m"},
            "experience": [{"company": "C", "role": "R", "start": "2020"}],
            "education": [{"institution": "I", "start": "2010"}],
            "skills": ["s"],
            "socials": [{"platform": "p", "url": "u"}],
            "footer": {"text": "t"},
        }
        assert parse_document(raw).kinds == list(SECTION_KINDS)


# ── Storage encoding ────────────────────────────────────────────────────────

class TestStorageEncoding:

    def test_serialize_uses_aliases_and_drops_none(self):
        doc = [build_header("A", None, "https://img")]
        assert serialize_document(doc) == [
            {"section": "header", "data": {"name": "A", "displayPicture": "https://img"}}
        ]

    def test_load_skips_invalid_sections(self):
        content = json.dumps([
            {"section": "skills", "data": ["X"]},
            {"section": "header", "data": {}},
            {"section": "unknown", "data": 1},
        ])
        assert [s.section for s in load_document(content)] == ["skills"]

    def test_load_garbage(self):
        assert load_document("not json") == []
        assert load_document('{"a": 1}') == []
        assert load_document(None) == []

    def test_dump_then_load_keeps_document(self):
        doc = [build_header("A", "t"), build_skills("x,y")]
        assert load_document(dump_document(doc)) == doc
