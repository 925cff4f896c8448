"""
LinkedIn Selectors

Candidate CSS selectors per field, tried in order. The first selector that
yields plausible text wins. Site layout drift is handled by editing these
tables, not the extraction code.
"""

from typing import Callable, Dict, List, Tuple
from dataclasses import dataclass, field


MIN_DESCRIPTION_LENGTH = 50

# Text that shows a "company" match actually landed in the description
ROLE_DESCRIPTION_MARKERS = (
    "responsible for",
    "you will",
    "we are looking",
    "vi søger",
    "du vil",
    "ansvarlig for",
)


def _non_empty(text: str) -> bool:
    return bool(text)


def _plausible_title(text: str) -> bool:
    return 0 < len(text) <= 200


def _plausible_company(text: str) -> bool:
    if not text or len(text) > 100:
        return False
    lowered = text.lower()
    return not any(marker in lowered for marker in ROLE_DESCRIPTION_MARKERS)


def _plausible_description(text: str) -> bool:
    return len(text) > MIN_DESCRIPTION_LENGTH


@dataclass(frozen=True)
class FieldSpec:
    """Ordered selectors for one field plus a plausibility predicate."""
    name: str
    selectors: Tuple[str, ...]
    plausible: Callable[[str], bool] = field(default=_non_empty)
    attribute: str = ""


TEXT_FIELDS: Dict[str, FieldSpec] = {
    spec.name: spec
    for spec in [
        FieldSpec(
            "title",
            (
                "h1.topcard__title",
                "div[data-job-id] .job-details-headline__title",
                ".job-details-jobs-unified-top-card__job-title h1",
                "h1.t-24.t-bold.inline",
                ".jobs-unified-top-card__job-title",
            ),
            _plausible_title,
        ),
        FieldSpec(
            "company_name",
            (
                "a.topcard__org-name-link",
                "span.topcard__flavor-row > a",
                ".job-details-jobs-unified-top-card__company-name a",
                ".job-details-jobs-unified-top-card__company-name",
                ".jobs-unified-top-card__company-name",
            ),
            _plausible_company,
        ),
        FieldSpec(
            "location_raw",
            (
                ".job-details-jobs-unified-top-card__primary-description-container .t-black--light",
                ".job-details-jobs-unified-top-card__primary-description-container",
                ".job-details-jobs-unified-top-card__tertiary-description-container",
                "span.topcard__flavor-row--bullet",
                ".jobs-unified-top-card__bullet",
            ),
        ),
        FieldSpec(
            "description",
            (
                "div#job-details",
                ".jobs-box__html-content",
                ".show-more-less-html__markup",
                ".jobs-description-content__text",
                ".jobs-description__content",
                ".jobs-description",
            ),
            _plausible_description,
        ),
    ]
}

APPLY_URL_FIELD = FieldSpec(
    "apply_url",
    (
        "a.apply-button",
        'a[data-tracking-control-name="public_jobs_apply_action"]',
        ".jobs-apply-button--top-card a",
    ),
    attribute="href",
)

COMPANY_IMAGE_FIELD = FieldSpec(
    "company_image_url",
    (
        ".job-details-jobs-unified-top-card__company-logo img",
        ".jobs-company__box img",
        "a.topcard__org-name-link img",
        "img.artdeco-entity-image",
    ),
    attribute="src",
)

CLOSED_NOTICE_SELECTORS: List[str] = [
    ".jobs-details-top-card__apply-error",
    ".artdeco-inline-feedback--error",
    ".closed-job",
]

# Header block holding title, company and apply state
TOP_CARD_SELECTORS: List[str] = [
    ".job-details-jobs-unified-top-card__container",
    ".jobs-unified-top-card",
    ".top-card-layout",
]

# Skills modal
SKILLS_MODAL_SELECTORS: List[str] = [
    ".job-details-skill-match-modal",
    '[role="dialog"]',
    ".artdeco-modal",
]

SKILLS_MODAL_OPENERS: List[str] = [
    ".job-details-jobs-unified-top-card__job-insight-text-button",
    'button[aria-label*="qualification"]',
    'button[aria-label*="kvalifikation"]',
    'button[aria-label*="skills"]',
]

REQUIREMENT_ITEM_SELECTOR = ".job-details-skill-match-modal__screening-questions-qualification-list-item"

SKILL_ITEM_SELECTORS: List[str] = [
    ".job-details-skill-match-status-list__matched-skill",
    ".job-details-skill-match-status-list__unmatched-skill",
]

# Affordances
EXPAND_BUTTON_SELECTORS: List[str] = [
    'button[aria-expanded="false"]',
    ".jobs-description-content__toggle",
    ".show-more-less-html__button",
]

EXPAND_BUTTON_LABELS: List[str] = ["show more", "se mere", "vis mere", "…more", "...more"]

# Readiness
DETAIL_READY_SELECTORS: List[str] = [
    "h1.topcard__title",
    ".job-details-jobs-unified-top-card__job-title",
    "h1.t-24.t-bold.inline",
    ".jobs-unified-top-card__job-title",
]

NOT_FOUND_SELECTORS: List[str] = [
    ".not-found-404",
    ".error-container",
    "#main-content .not-found",
]

SEARCH_READY_SELECTORS: List[str] = [
    ".jobs-search-results-list",
    ".jobs-search__results-list",
    "[data-occludable-job-id]",
    ".jobs-search-no-results-banner",
]

JOB_LINK_SELECTORS: List[str] = [
    'a[href*="/jobs/view/"]',
    "[data-occludable-job-id] a",
]

# Authentication
LOGIN_FORM_SELECTORS = {
    "username": 'input[name="session_key"]',
    "password": 'input[name="session_password"]',
    "submit": 'button[type="submit"]',
}

NAV_CHROME_SELECTORS: List[str] = ["nav.global-nav", ".global-nav"]

LOGIN_ERROR_SELECTORS: List[str] = [".form__input--error", ".alert--error"]

CHALLENGE_SELECTORS: List[str] = ['input[name="pin"]', "#input__email_verification_pin"]

CHALLENGE_SUBMIT_SELECTOR = "#email-pin-submit-button"

CHALLENGE_TEXT_MARKERS = ("verification code", "bekræftelseskode")
