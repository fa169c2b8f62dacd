"""
Section merge engine.

A document holds at most one section per kind. Merging replaces whole
sections by kind: a kind already present keeps its position with the new
content, a new kind is appended in the order it arrives.
"""

from typing import Dict, Iterable

from folio.schemas.portfolio import PortfolioDocument, PortfolioSection


def merge_sections(current: Iterable[PortfolioSection], incoming: Iterable[PortfolioSection]) -> PortfolioDocument:
    by_kind: Dict[str, PortfolioSection] = {}
    for section in current:
        by_kind[section.section] = section
    # dict assignment keeps the original insertion slot for an existing key
    for section in incoming:
        by_kind[section.section] = section
    return list(by_kind.values())


def replace_section(current: Iterable[PortfolioSection], section: PortfolioSection) -> PortfolioDocument:
    return merge_sections(current, [section])
