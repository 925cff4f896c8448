"""
Parsing Utilities

Pure text recognizers used by the Extractor: identifiers from URLs, the
bullet-separated location/date/applicants line, skill labels and work-type
phrases. English and Danish registers share one table-driven recognizer.
"""

import re
from typing import Iterable, List, Optional, Tuple
from datetime import datetime
from dataclasses import dataclass
from urllib.parse import urlparse

from dateutil.relativedelta import relativedelta

from jobpipeline.scrapers.base import WorkType


LOCATION_SEPARATOR = "·"

_IDENTIFIER_SEGMENT = re.compile(r"^\d{8,}$")

# Number words meaning "one" in each register
_NUMBER_WORDS = {"a": 1, "an": 1, "one": 1, "en": 1, "et": 1, "én": 1, "ét": 1}

_N_EN = r"(?P<n>\d+|an?|one)"
_N_DA = r"(?P<n>\d+|en|et|én|ét)"

RELATIVE_DATE_PATTERNS: List[Tuple["re.Pattern[str]", str]] = [
    (re.compile(pattern, re.IGNORECASE), unit)
    for pattern, unit in [
        # English
        (rf"\b{_N_EN}\s+minutes?\s+ago\b", "minutes"),
        (rf"\b{_N_EN}\s+hours?\s+ago\b", "hours"),
        (rf"\b{_N_EN}\s+days?\s+ago\b", "days"),
        (rf"\b{_N_EN}\s+weeks?\s+ago\b", "weeks"),
        (rf"\b{_N_EN}\s+months?\s+ago\b", "months"),
        (rf"\b{_N_EN}\s+years?\s+ago\b", "years"),
        # Danish
        (rf"\b{_N_DA}\s+minut(?:ter)?\s+siden\b", "minutes"),
        (rf"\b{_N_DA}\s+timer?\s+siden\b", "hours"),
        (rf"\b{_N_DA}\s+dage?\s+siden\b", "days"),
        (rf"\b{_N_DA}\s+uger?\s+siden\b", "weeks"),
        (rf"\b{_N_DA}\s+måned(?:er)?\s+siden\b", "months"),
        (rf"\b{_N_DA}\s+år\s+siden\b", "years"),
    ]
]

_COUNT = r"(?P<n>\d[\d.,]*)"

APPLICANT_PATTERNS: List["re.Pattern[str]"] = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in [
        rf"\b(?:more\s+than|over|mere\s+end)\s+{_COUNT}",
        rf"{_COUNT}\s+(?:applicants?|ansøgere?)\b",
        rf"^{_COUNT}$",
    ]
]

SKILL_LABEL_PATTERNS: List["re.Pattern[str]"] = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in [
        r"\b(?:does\s+not\s+show|doesn't\s+show|has|have)\s+(?P<skill>.+?)\s+as\s+a\s+skill",
        r"\b(?:viser\s+ikke|har)\s+(?P<skill>.+?)\s+som\s+en\s+kompetence",
    ]
]

# Phrases in the skills modal's qualification list
MODAL_WORK_TYPE_PHRASES: List[Tuple[WorkType, Tuple[str, ...]]] = [
    (WorkType.REMOTE, ("fjernarbejde", "remote")),
    (WorkType.HYBRID, ("hybridarbejde", "hybrid")),
    (WorkType.ON_SITE, ("arbejder på arbejdspladsen", "arbejdspladsen", "on-site", "on site")),
]

# Broader phrases for inferring work type from a description
DESCRIPTION_WORK_TYPE_PHRASES: List[Tuple[WorkType, Tuple[str, ...]]] = [
    (WorkType.REMOTE, (
        "fully remote", "100% remote", "work remotely", "work from home", "remote work",
        "fjernarbejde", "helt hjemmefra", "hjemmekontor",
    )),
    (WorkType.HYBRID, (
        "hybrid", "hybridarbejde", "partly remote", "delvis hjemmefra",
        "både hjemme og kontor",
    )),
    (WorkType.ON_SITE, (
        "on-site", "onsite", "on site", "in office", "på kontoret", "fysisk fremmøde",
    )),
]

TECH_SKILL_PATTERN = re.compile(
    r"(?<![\w#+])(php|javascript|typescript|java|python|c#|c\+\+|golang|rust|swift|kotlin|scala|"
    r"react|angular|vue|node\.?js|sql|mysql|postgresql|mongodb|redis|elasticsearch|"
    r"docker|kubernetes|aws|azure|gcp|terraform|git)(?![\w#+])",
    re.IGNORECASE,
)

_SKILL_CANONICAL = {
    "php": "PHP", "javascript": "JavaScript", "typescript": "TypeScript", "java": "Java",
    "python": "Python", "c#": "C#", "c++": "C++", "golang": "Go", "rust": "Rust",
    "swift": "Swift", "kotlin": "Kotlin", "scala": "Scala", "react": "React",
    "angular": "Angular", "vue": "Vue", "nodejs": "Node.js", "node.js": "Node.js",
    "sql": "SQL", "mysql": "MySQL", "postgresql": "PostgreSQL", "mongodb": "MongoDB",
    "redis": "Redis", "elasticsearch": "Elasticsearch", "docker": "Docker",
    "kubernetes": "Kubernetes", "aws": "AWS", "azure": "Azure", "gcp": "GCP",
    "terraform": "Terraform", "git": "Git",
}

CLOSED_PHRASES = (
    "no longer accepting applications",
    "modtager ikke længere ansøgninger",
)


@dataclass(frozen=True)
class LocationInfo:
    """Parsed form of the top-card bullet line."""
    location: str
    posted_at: datetime
    applicants: Optional[int]


def extract_identifier(url: str) -> Optional[str]:
    """
    Extract the posting identifier from a job URL.

    The identifier is the first path segment made only of 8 or more digits.
    Query strings and fragments are ignored.

    Returns:
        Optional[str]: The identifier verbatim, or None if the URL has none
    """
    if not url:
        return None
    path = urlparse(url.strip()).path
    for segment in path.split("/"):
        if _IDENTIFIER_SEGMENT.match(segment):
            return segment
    return None


def _to_number(token: str) -> int:
    token = token.lower()
    if token in _NUMBER_WORDS:
        return _NUMBER_WORDS[token]
    return int(token)


def parse_relative_date(text: str, captured_at: datetime) -> Optional[datetime]:
    """
    Resolve a relative date phrase ("2 weeks ago", "6 dage siden") against
    the capture time.

    Returns:
        Optional[datetime]: Absolute timestamp, or None if no phrase matches
    """
    if not text:
        return None
    for pattern, unit in RELATIVE_DATE_PATTERNS:
        match = pattern.search(text)
        if match:
            amount = _to_number(match.group("n"))
            return captured_at - relativedelta(**{unit: amount})
    return None


def parse_applicants(text: str) -> Optional[int]:
    """
    Parse an applicant count. "more than N" style phrases yield N.

    Returns:
        Optional[int]: Applicant count, or None if the text is not an applicant count
    """
    if not text:
        return None
    text = text.strip()
    for pattern in APPLICANT_PATTERNS:
        match = pattern.search(text)
        if match:
            digits = re.sub(r"[.,]", "", match.group("n"))
            if digits:
                return int(digits)
    return None


def parse_location_info(location_raw: str, captured_at: datetime) -> LocationInfo:
    """
    Split the "location · posted · applicants" line into its parts.

    Segment 0 is the literal location. Every other segment is probed for a
    relative date and an applicant count; the first hit of each wins. A
    missing date defaults to the capture time.
    """
    parts = [part.strip() for part in (location_raw or "").split(LOCATION_SEPARATOR)]
    location = parts[0] if parts else ""

    posted_at: Optional[datetime] = None
    applicants: Optional[int] = None

    for part in parts[1:]:
        if posted_at is None:
            posted_at = parse_relative_date(part, captured_at)
            if posted_at is not None:
                continue
        if applicants is None:
            applicants = parse_applicants(part)

    return LocationInfo(
        location=location,
        posted_at=posted_at or captured_at,
        applicants=applicants,
    )


def parse_skill_label(label: str) -> Optional[str]:
    """Extract the skill name from an accessible label on a skill item."""
    if not label:
        return None
    for pattern in SKILL_LABEL_PATTERNS:
        match = pattern.search(label)
        if match:
            skill = match.group("skill").strip(" .,")
            if skill:
                return skill
    return None


def infer_work_type(
    texts: Iterable[str],
    phrases: List[Tuple[WorkType, Tuple[str, ...]]] = MODAL_WORK_TYPE_PHRASES
) -> WorkType:
    """Return the first work type whose phrases occur in any text."""
    lowered = [text.lower() for text in texts if text]
    for work_type, candidates in phrases:
        for text in lowered:
            if any(phrase in text for phrase in candidates):
                return work_type
    return WorkType.UNSPECIFIED


def find_tech_skills(text: str) -> List[str]:
    """Find known technology names in free text, in order of first mention."""
    found: List[str] = []
    for match in TECH_SKILL_PATTERN.finditer(text or ""):
        name = _SKILL_CANONICAL.get(match.group(1).lower(), match.group(1))
        if name not in found:
            found.append(name)
    return found


def is_closed_notice(text: str) -> bool:
    lowered = (text or "").lower()
    return any(phrase in lowered for phrase in CLOSED_PHRASES)
