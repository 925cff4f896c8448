"""
Posting Extractor

Turns a rendered LinkedIn detail page (HTML snapshot taken after the
description was expanded and the skills modal opened) into a
``PostingRecord``. Extraction is pure: no browser or network access.
"""

import re
from typing import List, Optional, Set
from datetime import datetime
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from jobpipeline.core.exceptions import ExtractionEmptyError
from jobpipeline.scrapers.base import LINKEDIN_BASE_URL, PostingRecord, WorkType
from jobpipeline.scrapers.parsing import (
    DESCRIPTION_WORK_TYPE_PHRASES,
    MODAL_WORK_TYPE_PHRASES,
    extract_identifier,
    find_tech_skills,
    infer_work_type,
    is_closed_notice,
    parse_location_info,
    parse_skill_label,
)
from jobpipeline.scrapers import selectors
from jobpipeline.scrapers.selectors import FieldSpec

MAX_SKILL_LENGTH = 50

_WHITESPACE = re.compile(r"[ \t\r\f\v]+")
_BLANK_LINES = re.compile(r"\n\s*\n+")


def _clean_inline(text: str) -> str:
    return " ".join(text.split())


def _clean_block(text: str) -> str:
    text = _WHITESPACE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    return _BLANK_LINES.sub("\n\n", text).strip()


def select_text(soup: BeautifulSoup, spec: FieldSpec, block: bool = False) -> str:
    """
    Return the text of the first selector match that passes the field's
    plausibility check, or an empty string.
    """
    for css in spec.selectors:
        for element in soup.select(css):
            if block:
                text = _clean_block(element.get_text("\n"))
            else:
                text = _clean_inline(element.get_text(" "))
            if spec.plausible(text):
                return text
    return ""


def select_attribute(soup: BeautifulSoup, spec: FieldSpec) -> str:
    for css in spec.selectors:
        element = soup.select_one(css)
        if element is not None:
            value = (element.get(spec.attribute) or "").strip()
            if value:
                return value
    return ""


def find_skills_modal(soup: BeautifulSoup) -> Optional[Tag]:
    """Locate the open skills modal, if any."""
    for css in selectors.SKILLS_MODAL_SELECTORS:
        modal = soup.select_one(css)
        if modal is not None:
            return modal
    return None


def _skill_from_item(item: Tag) -> Optional[str]:
    labelled = [item] if item.has_attr("aria-label") else []
    labelled.extend(item.select("[aria-label]"))
    for element in labelled:
        skill = parse_skill_label(element.get("aria-label", ""))
        if skill:
            return skill

    name_element = (
        item.select_one(".job-details-skill-match-status-list__skill-name")
        or item.select_one("div[aria-label] div")
        or item.select_one("div")
        or item
    )
    text = _clean_inline(name_element.get_text(" "))
    if 0 < len(text) < MAX_SKILL_LENGTH:
        return text
    return None


def extract_modal_skills(modal: Tag) -> Set[str]:
    skills: Set[str] = set()
    for css in selectors.SKILL_ITEM_SELECTORS:
        for item in modal.select(css):
            skill = _skill_from_item(item)
            if skill:
                skills.add(skill)
    return skills


def extract_modal_work_type(modal: Tag) -> WorkType:
    items = [
        _clean_inline(item.get_text(" "))
        for item in modal.select(selectors.REQUIREMENT_ITEM_SELECTOR)
    ]
    if not items:
        items = [_clean_inline(modal.get_text(" "))]
    return infer_work_type(items, MODAL_WORK_TYPE_PHRASES)


def detect_closed(soup: BeautifulSoup) -> bool:
    for css in selectors.CLOSED_NOTICE_SELECTORS:
        for element in soup.select(css):
            if is_closed_notice(element.get_text(" ")):
                return True
    for css in selectors.TOP_CARD_SELECTORS:
        card = soup.select_one(css)
        if card is not None and is_closed_notice(card.get_text(" ")):
            return True
    return False


def extract_posting(html: str, url: str, captured_at: datetime) -> PostingRecord:
    """
    Extract a posting record from a rendered detail page.

    Args:
        html: Page source after all interactions
        url: URL the page was loaded from
        captured_at: Capture time that relative dates resolve against

    Returns:
        PostingRecord: Extracted record; fields other than title and
        company may be empty

    Raises:
        ExtractionEmptyError: The page has neither title nor company, or the
        URL carries no identifier
    """
    identifier = extract_identifier(url)
    if identifier is None:
        raise ExtractionEmptyError(url)

    soup = BeautifulSoup(html or "", "html.parser")

    title = select_text(soup, selectors.TEXT_FIELDS["title"])
    company_name = select_text(soup, selectors.TEXT_FIELDS["company_name"])
    if not title and not company_name:
        raise ExtractionEmptyError(identifier)

    location_raw = select_text(soup, selectors.TEXT_FIELDS["location_raw"])
    location_info = parse_location_info(location_raw, captured_at)

    description = select_text(soup, selectors.TEXT_FIELDS["description"], block=True)

    apply_url = select_attribute(soup, selectors.APPLY_URL_FIELD)
    apply_url = urljoin(LINKEDIN_BASE_URL, apply_url) if apply_url else url

    image_url = select_attribute(soup, selectors.COMPANY_IMAGE_FIELD) or None

    modal = find_skills_modal(soup)
    if modal is not None:
        work_type = extract_modal_work_type(modal)
        skills = extract_modal_skills(modal)
    else:
        work_type = WorkType.UNSPECIFIED
        skills = set()

    # Modal data wins; the description only fills gaps
    if work_type is WorkType.UNSPECIFIED and description:
        work_type = infer_work_type([description], DESCRIPTION_WORK_TYPE_PHRASES)
    if not skills and description:
        skills = set(find_tech_skills(description))

    return PostingRecord(
        identifier=identifier,
        title=title,
        company_name=company_name,
        location_raw=location_raw,
        location=location_info.location,
        posted_at=location_info.posted_at,
        applicants=location_info.applicants,
        description=description,
        apply_url=apply_url,
        work_type=work_type,
        skills=frozenset(skills),
        company_image_url=image_url,
        is_closed=detect_closed(soup),
        captured_at=captured_at,
    )


def extract_job_urls(html: str) -> List[str]:
    """
    Collect detail-page URLs from a rendered search results page, in page
    order, one per identifier.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    urls: List[str] = []
    seen: Set[str] = set()

    for css in selectors.JOB_LINK_SELECTORS:
        for link in soup.select(css):
            href = (link.get("href") or "").strip()
            if not href:
                continue
            absolute = urljoin(LINKEDIN_BASE_URL, href)
            identifier = extract_identifier(absolute)
            if identifier is None or identifier in seen:
                continue
            seen.add(identifier)
            urls.append(absolute.split("?", 1)[0])

    return urls


def is_not_found_page(html: str) -> bool:
    """Whether the page is the 404 surface rather than a posting."""
    soup = BeautifulSoup(html or "", "html.parser")
    return any(soup.select_one(css) is not None for css in selectors.NOT_FOUND_SELECTORS)


def is_login_page(html: str) -> bool:
    """Whether the session was redirected to the login form."""
    soup = BeautifulSoup(html or "", "html.parser")
    return soup.select_one(selectors.LOGIN_FORM_SELECTORS["username"]) is not None
