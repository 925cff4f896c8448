"""
LinkedIn Page Flows

The two page visits the pipeline makes: a search results page (yielding job
URLs) and a job detail page (yielding a rendered HTML snapshot for the
Extractor). Interactions on the detail page are best-effort.
"""

from typing import List

from jobpipeline.core.exceptions import AuthFailedError, BrowserError
from jobpipeline.scrapers.base import build_job_url, build_search_url
from jobpipeline.scrapers.browser import BrowserDriver, css_union
from jobpipeline.scrapers.extractor import extract_job_urls, is_login_page
from jobpipeline.scrapers import selectors
from jobpipeline.utils.logger import LoggerMixin, log_scraping_activity


class LinkedInPages(LoggerMixin):
    """Renders LinkedIn pages through a logged-in ``BrowserDriver``."""

    def __init__(self, driver: BrowserDriver) -> None:
        self.driver = driver

    async def authenticate(self) -> None:
        await self.driver.authenticate()

    async def search_page(self, keywords: str, location: str, start: int) -> List[str]:
        """
        Load one page of search results and return its job URLs.

        Raises:
            AuthFailedError: The session was redirected to the login form
            NavigationTimeoutError: The page did not load in time
        """
        url = build_search_url(keywords, location, start)
        log_scraping_activity("discover", "search_page", url=url, start=start)

        await self.driver.navigate(url)
        await self.driver.wait_ready(
            css_union(selectors.SEARCH_READY_SELECTORS, [selectors.LOGIN_FORM_SELECTORS["username"]])
        )

        try:
            # Result cards render lazily as the list scrolls
            await self.driver.scroll_through()
        except BrowserError as e:
            self.logger.debug("Search page scroll failed", error=str(e))

        html = await self.driver.page_source()
        if is_login_page(html):
            raise AuthFailedError("Session was redirected to the login page")
        return extract_job_urls(html)

    async def detail_page(self, identifier: str) -> str:
        """
        Load a job detail page, expand it, open the skills modal and return
        the rendered HTML.

        Raises:
            NavigationTimeoutError: The page did not load in time
        """
        url = build_job_url(identifier)
        await self.driver.navigate(url)

        matched = await self.driver.wait_ready(
            css_union(selectors.DETAIL_READY_SELECTORS, selectors.NOT_FOUND_SELECTORS)
        )
        if matched in selectors.NOT_FOUND_SELECTORS:
            return await self.driver.page_source()

        await self._best_effort("expand_all", self.driver.expand_all())
        await self._best_effort("scroll_through", self.driver.scroll_through())
        await self._best_effort(
            "open_skills_modal",
            self.driver.click_and_wait(
                selectors.SKILLS_MODAL_OPENERS,
                selectors.SKILLS_MODAL_SELECTORS,
            ),
        )

        return await self.driver.page_source()

    async def _best_effort(self, action: str, operation) -> None:
        try:
            await operation
        except BrowserError as e:
            self.logger.debug("Page interaction failed", action=action, error=str(e))
