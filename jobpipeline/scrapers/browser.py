"""
Browser Driver

Owns one Selenium Chrome session for a whole run: launch with a persistent
profile, LinkedIn login, bounded navigation and readiness waits, script
evaluation and a few best-effort page interactions. Blocking Selenium calls
run in the default executor so the event loop stays responsive.
"""

import asyncio
import functools
import os
import sys
from typing import Any, Callable, List, Optional, Sequence

from selenium import webdriver
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.support.ui import WebDriverWait
from selenium.common.exceptions import TimeoutException, WebDriverException

from jobpipeline.core.config import Settings
from jobpipeline.core.exceptions import (
    AuthChallengeError,
    AuthFailedError,
    BrowserError,
    ConfigMissingError,
    NavigationTimeoutError,
)
from jobpipeline.scrapers.base import LOGIN_URL, ScrapingConfig
from jobpipeline.scrapers import selectors
from jobpipeline.utils.logger import LoggerMixin

LOGIN_RESULT_TIMEOUT = 30.0
CHALLENGE_RESULT_TIMEOUT = 60.0

_EXPAND_SCRIPT = """
const selectors = arguments[0];
const labels = arguments[1];
let clicked = 0;
for (const selector of selectors) {
    const labelled = selector.startsWith('button[aria-expanded');
    for (const button of document.querySelectorAll(selector)) {
        const text = (button.innerText || button.getAttribute('aria-label') || '').toLowerCase();
        if (!labelled || labels.some(label => text.includes(label))) {
            try { button.click(); clicked++; } catch (e) {}
        }
    }
}
return clicked;
"""

_CLICK_SCRIPT = "arguments[0].scrollIntoView({block: 'center'}); arguments[0].click();"


def build_chrome_options(
    headless: bool = True,
    executable_path: Optional[str] = None,
    user_data_dir: Optional[str] = None
) -> Options:
    """Chrome options for an unattended scraping session."""
    options = Options()

    if headless:
        options.add_argument("--headless=new")
    if executable_path:
        options.binary_location = executable_path
    if user_data_dir:
        # Keeps login cookies between runs
        options.add_argument(f"--user-data-dir={os.path.abspath(user_data_dir)}")

    options.add_argument("--no-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--disable-gpu")
    options.add_argument("--disable-extensions")
    options.add_argument("--window-size=1920,1080")

    # Images off for bandwidth
    options.add_experimental_option(
        "prefs", {"profile.managed_default_content_settings.images": 2}
    )
    return options


class BrowserDriver(LoggerMixin):
    """
    Scoped Chrome session.

    Use as an async context manager so the browser is closed on every exit
    path. The driver never retries; errors go back to the caller.
    """

    def __init__(
        self,
        config: Optional[ScrapingConfig] = None,
        headless: bool = True,
        executable_path: Optional[str] = None,
        user_data_dir: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
        driver_factory: Optional[Callable[[Options], Any]] = None,
        prompt: Optional[Callable[[str], str]] = None
    ) -> None:
        """
        Initialize the driver.

        Args:
            config: Deadlines and pacing
            headless: Run Chrome without a window
            executable_path: Chrome binary override
            user_data_dir: Persistent profile directory
            email: LinkedIn login
            password: LinkedIn password
            driver_factory: Builds the WebDriver from options, used by tests
            prompt: Reads a verification code from a human; defaults to
                ``input`` when stdin is a terminal
        """
        self.config = config or ScrapingConfig()
        self.headless = headless
        self.executable_path = executable_path
        self.user_data_dir = user_data_dir
        self.email = email
        self.password = password
        self._driver_factory = driver_factory or (lambda options: webdriver.Chrome(options=options))
        self._prompt = prompt
        self.driver: Optional[Any] = None
        self.authenticated = False

    @classmethod
    def from_settings(cls, settings: Settings, config: Optional[ScrapingConfig] = None) -> "BrowserDriver":
        config = config or ScrapingConfig(delay_between_requests=settings.DELAY_BETWEEN_REQUESTS)
        return cls(
            config=config,
            headless=settings.HEADLESS_BROWSER,
            executable_path=settings.CHROME_EXECUTABLE_PATH,
            user_data_dir=settings.USER_DATA_DIR,
            email=settings.LINKEDIN_EMAIL,
            password=settings.LINKEDIN_PASSWORD,
        )

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _run(self, func: Callable, *args, **kwargs) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))

    def _require_driver(self) -> Any:
        if self.driver is None:
            raise BrowserError("Browser session is not started", error_code="BROWSER_NOT_STARTED")
        return self.driver

    async def start(self) -> None:
        """Launch Chrome."""
        if self.driver is not None:
            return

        options = build_chrome_options(self.headless, self.executable_path, self.user_data_dir)
        try:
            self.driver = await self._run(self._driver_factory, options)
        except WebDriverException as e:
            raise BrowserError(f"Failed to launch Chrome: {e.msg or e}", error_code="BROWSER_LAUNCH", fatal=True)

        self.driver.set_page_load_timeout(self.config.navigation_timeout)
        self.driver.set_script_timeout(self.config.script_timeout)
        self.logger.info("Browser session started", headless=self.headless)

    async def close(self) -> None:
        if self.driver is None:
            return
        driver, self.driver = self.driver, None
        try:
            await self._run(driver.quit)
        except WebDriverException as e:
            self.logger.warning("Browser quit failed", error=str(e))
        self.logger.info("Browser session closed")

    # Navigation

    async def navigate(self, url: str) -> None:
        """
        Load ``url`` within the navigation deadline.

        Raises:
            NavigationTimeoutError: The page did not load in time
            BrowserError: Any other WebDriver failure
        """
        driver = self._require_driver()
        try:
            await self._run(driver.get, url)
        except TimeoutException:
            raise NavigationTimeoutError(url, self.config.navigation_timeout)
        except WebDriverException as e:
            raise BrowserError(f"Navigation to {url} failed: {e.msg or e}", error_code="NAVIGATION_FAILED")

    @staticmethod
    def _first_present(css_list: Sequence[str]) -> Callable[[Any], Any]:
        def check(driver):
            for css in css_list:
                if driver.find_elements(By.CSS_SELECTOR, css):
                    return css
            return False
        return check

    async def wait_ready(
        self,
        css_list: Sequence[str],
        timeout: Optional[float] = None,
        fallback_sleep: Optional[float] = None
    ) -> Optional[str]:
        """
        Wait until any of ``css_list`` is present.

        On timeout, sleeps for a short fixed period instead of failing, since
        readiness markers occasionally miss on slow or variant layouts.

        Returns:
            Optional[str]: The selector that matched, or None on timeout
        """
        driver = self._require_driver()
        timeout = timeout if timeout is not None else self.config.ready_timeout
        fallback_sleep = fallback_sleep if fallback_sleep is not None else self.config.fallback_sleep

        wait = WebDriverWait(driver, timeout, poll_frequency=0.25)
        try:
            return await self._run(wait.until, self._first_present(css_list))
        except TimeoutException:
            self.logger.debug("Ready wait timed out", selectors=list(css_list), timeout=timeout)
            if fallback_sleep:
                await asyncio.sleep(fallback_sleep)
            return None
        except WebDriverException as e:
            raise BrowserError(f"Ready wait failed: {e.msg or e}", error_code="READY_WAIT_FAILED")

    async def evaluate(self, script: str, *args) -> Any:
        """Run JavaScript in the page and return its value."""
        driver = self._require_driver()
        try:
            return await self._run(driver.execute_script, script, *args)
        except TimeoutException:
            raise BrowserError(
                f"Script timed out after {self.config.script_timeout:.0f}s",
                error_code="SCRIPT_TIMEOUT",
            )
        except WebDriverException as e:
            raise BrowserError(f"Script evaluation failed: {e.msg or e}", error_code="SCRIPT_FAILED")

    async def page_source(self) -> str:
        driver = self._require_driver()
        try:
            return await self._run(lambda: driver.page_source)
        except WebDriverException as e:
            raise BrowserError(f"Could not read page source: {e.msg or e}")

    async def current_url(self) -> str:
        driver = self._require_driver()
        try:
            return await self._run(lambda: driver.current_url)
        except WebDriverException as e:
            raise BrowserError(f"Could not read current URL: {e.msg or e}")

    # Interactions

    async def expand_all(self) -> int:
        """Click every collapsed "show more" control. Returns the number clicked."""
        clicked = await self.evaluate(
            _EXPAND_SCRIPT,
            selectors.EXPAND_BUTTON_SELECTORS,
            selectors.EXPAND_BUTTON_LABELS,
        )
        if clicked:
            await asyncio.sleep(self.config.scroll_pause)
        return int(clicked or 0)

    async def scroll_through(self) -> None:
        """Scroll to the bottom and back to the top to trigger lazy loading."""
        await self.evaluate("window.scrollTo(0, document.body.scrollHeight);")
        await asyncio.sleep(self.config.scroll_pause)
        await self.evaluate("window.scrollTo(0, 0);")

    async def click_and_wait(
        self,
        openers: Sequence[str],
        targets: Sequence[str],
        timeout: Optional[float] = None
    ) -> bool:
        """
        Click the first present opener and wait for any target to appear.

        Returns:
            bool: True if a target appeared within the modal deadline
        """
        driver = self._require_driver()
        timeout = timeout if timeout is not None else self.config.modal_timeout

        for css in openers:
            try:
                elements = await self._run(driver.find_elements, By.CSS_SELECTOR, css)
            except WebDriverException as e:
                raise BrowserError(f"Lookup of {css} failed: {e.msg or e}")
            if not elements:
                continue

            await self.evaluate(_CLICK_SCRIPT, elements[0])
            matched = await self.wait_ready(targets, timeout=timeout, fallback_sleep=0)
            return matched is not None

        return False

    async def _type_into(self, css: str, text: str, submit: bool = False) -> None:
        driver = self._require_driver()
        try:
            element = await self._run(driver.find_element, By.CSS_SELECTOR, css)
            await self._run(element.clear)
            await self._run(element.send_keys, text + (Keys.RETURN if submit else ""))
        except WebDriverException as e:
            raise BrowserError(f"Could not type into {css}: {e.msg or e}")

    async def _click(self, css: str) -> bool:
        driver = self._require_driver()
        try:
            elements = await self._run(driver.find_elements, By.CSS_SELECTOR, css)
        except WebDriverException as e:
            raise BrowserError(f"Lookup of {css} failed: {e.msg or e}")
        if not elements:
            return False
        await self.evaluate(_CLICK_SCRIPT, elements[0])
        return True

    # Authentication

    async def authenticate(self) -> None:
        """
        Make sure the session is logged in to LinkedIn.

        A saved profile usually lands straight on the feed. Otherwise the
        credentials are submitted and a verification challenge, if shown, is
        answered from the terminal.

        Raises:
            ConfigMissingError: A login is needed but no credentials are set
            AuthFailedError: LinkedIn rejected the credentials
            AuthChallengeError: A challenge appeared and could not be answered
        """
        if self.authenticated:
            return

        await self.navigate(LOGIN_URL)
        login_form = selectors.LOGIN_FORM_SELECTORS["username"]
        matched = await self.wait_ready(
            selectors.NAV_CHROME_SELECTORS + [login_form],
            fallback_sleep=self.config.login_fallback_sleep,
        )

        if matched in selectors.NAV_CHROME_SELECTORS:
            self.logger.info("Existing LinkedIn session found")
            self.authenticated = True
            return

        if not self.email or not self.password:
            raise ConfigMissingError(["LINKEDIN_EMAIL", "LINKEDIN_PASSWORD"])

        self.logger.info("Logging in to LinkedIn")
        await self._type_into(selectors.LOGIN_FORM_SELECTORS["username"], self.email)
        await self._type_into(selectors.LOGIN_FORM_SELECTORS["password"], self.password)
        if not await self._click(selectors.LOGIN_FORM_SELECTORS["submit"]):
            raise AuthFailedError("Login form has no submit button")

        await self._await_login_result()
        self.authenticated = True
        self.logger.info("LinkedIn login succeeded")

    async def _await_login_result(self) -> None:
        outcomes = (
            selectors.NAV_CHROME_SELECTORS
            + selectors.LOGIN_ERROR_SELECTORS
            + selectors.CHALLENGE_SELECTORS
        )
        matched = await self.wait_ready(
            outcomes,
            timeout=LOGIN_RESULT_TIMEOUT,
            fallback_sleep=self.config.login_fallback_sleep,
        )

        if matched in selectors.NAV_CHROME_SELECTORS:
            return
        if matched in selectors.LOGIN_ERROR_SELECTORS:
            raise AuthFailedError("LinkedIn rejected the credentials")
        if matched in selectors.CHALLENGE_SELECTORS or await self._challenge_text_shown():
            pin_field = matched if matched in selectors.CHALLENGE_SELECTORS else selectors.CHALLENGE_SELECTORS[0]
            await self._answer_challenge(pin_field)
            return

        current = await self.current_url()
        if "/feed" in current:
            return
        raise AuthFailedError(f"Login did not complete, ended at {current}")

    async def _challenge_text_shown(self) -> bool:
        source = (await self.page_source()).lower()
        return any(marker in source for marker in selectors.CHALLENGE_TEXT_MARKERS)

    def _resolve_prompt(self) -> Callable[[str], str]:
        if self._prompt is not None:
            return self._prompt
        if not sys.stdin or not sys.stdin.isatty():
            raise AuthChallengeError("LinkedIn asked for a verification code but no terminal is attached")
        return input

    async def _answer_challenge(self, pin_field: str) -> None:
        prompt = self._resolve_prompt()
        self.logger.warning("LinkedIn verification challenge shown, waiting for code")

        code = (await self._run(prompt, "Enter the LinkedIn verification code: ")).strip()
        if not code:
            raise AuthChallengeError("No verification code entered")

        await self._type_into(pin_field, code)
        if not await self._click(selectors.CHALLENGE_SUBMIT_SELECTOR):
            await self._type_into(pin_field, code, submit=True)

        matched = await self.wait_ready(
            selectors.NAV_CHROME_SELECTORS,
            timeout=CHALLENGE_RESULT_TIMEOUT,
            fallback_sleep=0,
        )
        if matched is None:
            raise AuthChallengeError("Verification code was not accepted")


def css_union(*groups: List[str]) -> List[str]:
    """Concatenate selector groups, keeping the first occurrence of each."""
    merged: List[str] = []
    for group in groups:
        for css in group:
            if css not in merged:
                merged.append(css)
    return merged
