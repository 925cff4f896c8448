"""
Tests for the Selenium browser driver and the LinkedIn page flows.

The WebDriver is replaced by a scripted fake, so no Chrome is needed.
"""

import io
import os

import pytest
from unittest.mock import AsyncMock, MagicMock
from selenium.common.exceptions import TimeoutException, WebDriverException

from jobpipeline.core.exceptions import (
    AuthChallengeError,
    AuthFailedError,
    BrowserError,
    ConfigMissingError,
    NavigationTimeoutError,
)
from jobpipeline.scrapers import selectors
from jobpipeline.scrapers.base import ScrapingConfig
from jobpipeline.scrapers.browser import BrowserDriver, build_chrome_options, css_union
from jobpipeline.scrapers.linkedin import LinkedInPages

LOGIN_FORM = selectors.LOGIN_FORM_SELECTORS["username"]
SUBMIT = selectors.LOGIN_FORM_SELECTORS["submit"]
NAV = selectors.NAV_CHROME_SELECTORS[0]
PIN = selectors.CHALLENGE_SELECTORS[0]


class ScriptedWebDriver:
    """
    Fake WebDriver whose visible elements move through ``stages``. Every
    scripted click advances to the next stage.
    """

    def __init__(self, stages, always=(), page_source="", current_url="https://www.linkedin.com/login"):
        self.stages = [set(stage) for stage in stages]
        self.stage = 0
        self.always = set(always)
        self.page_source = page_source
        self.current_url = current_url
        self.get = MagicMock()
        self.quit = MagicMock()
        self.set_page_load_timeout = MagicMock()
        self.set_script_timeout = MagicMock()
        self.typed = []
        self.scripts = []

    def find_elements(self, by, css):
        if css in self.stages[self.stage] or css in self.always:
            return [MagicMock(name=css)]
        return []

    def find_element(self, by, css):
        element = MagicMock(name=css)
        element.send_keys.side_effect = lambda text: self.typed.append((css, text))
        return element

    def execute_script(self, script, *args):
        self.scripts.append(script)
        if "click()" in script and self.stage < len(self.stages) - 1:
            self.stage += 1
        return 0


def fast_config() -> ScrapingConfig:
    return ScrapingConfig(ready_timeout=0.01, fallback_sleep=0, login_fallback_sleep=0, scroll_pause=0)


def make_driver(fake, **kwargs) -> BrowserDriver:
    return BrowserDriver(config=fast_config(), driver_factory=lambda options: fake, **kwargs)


@pytest.mark.unit
class TestChromeOptions:

    def test_headless_profile_options(self, tmp_path):
        options = build_chrome_options(
            headless=True,
            executable_path="/opt/chrome/chrome",
            user_data_dir=str(tmp_path),
        )

        assert "--headless=new" in options.arguments
        assert f"--user-data-dir={os.path.abspath(str(tmp_path))}" in options.arguments
        assert "--no-sandbox" in options.arguments
        assert options.binary_location == "/opt/chrome/chrome"
        assert options.experimental_options["prefs"] == {"profile.managed_default_content_settings.images": 2}

    def test_headed(self):
        options = build_chrome_options(headless=False)

        assert "--headless=new" not in options.arguments

    def test_css_union_keeps_order(self):
        assert css_union(["a", "b"], ["b", "c"]) == ["a", "b", "c"]


@pytest.mark.unit
class TestLifecycle:

    async def test_start_sets_timeouts_and_close_quits(self):
        fake = ScriptedWebDriver([set()])

        async with make_driver(fake) as driver:
            assert driver.driver is fake

        fake.set_page_load_timeout.assert_called_once_with(15.0)
        fake.set_script_timeout.assert_called_once_with(30.0)
        fake.quit.assert_called_once()
        assert driver.driver is None

    async def test_launch_failure_is_fatal(self):
        def factory(options):
            raise WebDriverException("chrome not reachable")

        driver = BrowserDriver(config=fast_config(), driver_factory=factory)

        with pytest.raises(BrowserError) as exc_info:
            await driver.start()
        assert exc_info.value.fatal is True

    async def test_use_before_start(self):
        with pytest.raises(BrowserError):
            await BrowserDriver().navigate("https://www.linkedin.com/")


@pytest.mark.unit
class TestNavigation:

    async def test_navigate_timeout(self):
        fake = ScriptedWebDriver([set()])
        fake.get.side_effect = TimeoutException("page load")

        async with make_driver(fake) as driver:
            with pytest.raises(NavigationTimeoutError) as exc_info:
                await driver.navigate("https://www.linkedin.com/jobs/view/4012345678/")

        assert exc_info.value.fatal is False

    async def test_navigate_webdriver_error(self):
        fake = ScriptedWebDriver([set()])
        fake.get.side_effect = WebDriverException("net::ERR_NAME_NOT_RESOLVED")

        async with make_driver(fake) as driver:
            with pytest.raises(BrowserError):
                await driver.navigate("https://www.linkedin.com/")

    async def test_wait_ready_returns_matched_selector(self):
        fake = ScriptedWebDriver([{".b"}])

        async with make_driver(fake) as driver:
            assert await driver.wait_ready([".a", ".b"]) == ".b"

    async def test_wait_ready_times_out_softly(self):
        fake = ScriptedWebDriver([set()])

        async with make_driver(fake) as driver:
            assert await driver.wait_ready([".a"]) is None

    async def test_click_and_wait_without_opener(self):
        fake = ScriptedWebDriver([set()])

        async with make_driver(fake) as driver:
            assert await driver.click_and_wait([".opener"], [".modal"]) is False

    async def test_click_and_wait_opens_target(self):
        fake = ScriptedWebDriver([{".opener"}, {".modal"}])

        async with make_driver(fake) as driver:
            assert await driver.click_and_wait([".opener"], [".modal"]) is True


@pytest.mark.unit
class TestAuthentication:

    async def test_existing_session(self):
        fake = ScriptedWebDriver([{NAV}])

        async with make_driver(fake) as driver:
            await driver.authenticate()
            assert driver.authenticated is True

        assert fake.typed == []

    async def test_missing_credentials(self):
        fake = ScriptedWebDriver([{LOGIN_FORM}])

        async with make_driver(fake) as driver:
            with pytest.raises(ConfigMissingError):
                await driver.authenticate()

    async def test_login_with_credentials(self):
        fake = ScriptedWebDriver([{LOGIN_FORM}, {NAV}], always={SUBMIT})

        async with make_driver(fake, email="me@example.com", password="hunter2") as driver:
            await driver.authenticate()

        assert (LOGIN_FORM, "me@example.com") in fake.typed
        assert driver.authenticated is True

    async def test_rejected_credentials(self):
        fake = ScriptedWebDriver([{LOGIN_FORM}, {selectors.LOGIN_ERROR_SELECTORS[0]}], always={SUBMIT})

        async with make_driver(fake, email="me@example.com", password="wrong") as driver:
            with pytest.raises(AuthFailedError):
                await driver.authenticate()

    async def test_challenge_answered_from_prompt(self):
        fake = ScriptedWebDriver(
            [{LOGIN_FORM}, {PIN}, {NAV}],
            always={SUBMIT, selectors.CHALLENGE_SUBMIT_SELECTOR},
        )

        async with make_driver(
            fake, email="me@example.com", password="hunter2", prompt=lambda message: " 123456 "
        ) as driver:
            await driver.authenticate()

        assert (PIN, "123456") in fake.typed

    async def test_challenge_without_terminal(self, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO())
        fake = ScriptedWebDriver([{LOGIN_FORM}, {PIN}], always={SUBMIT})

        async with make_driver(fake, email="me@example.com", password="hunter2") as driver:
            with pytest.raises(AuthChallengeError):
                await driver.authenticate()


@pytest.fixture
def browser():
    driver = MagicMock(spec=BrowserDriver)
    driver.navigate = AsyncMock()
    driver.wait_ready = AsyncMock(return_value=None)
    driver.scroll_through = AsyncMock()
    driver.expand_all = AsyncMock(return_value=1)
    driver.click_and_wait = AsyncMock(return_value=True)
    driver.page_source = AsyncMock(return_value="<html></html>")
    driver.authenticate = AsyncMock()
    return driver


@pytest.mark.scraper
class TestLinkedInPages:

    async def test_search_page_returns_urls(self, browser, load_fixture):
        browser.page_source.return_value = load_fixture("search_results.html")

        urls = await LinkedInPages(browser).search_page("go developer", "Denmark", 25)

        assert len(urls) == 3
        navigated = browser.navigate.await_args.args[0]
        assert "start=25" in navigated

    async def test_search_page_scroll_failure_is_ignored(self, browser, load_fixture):
        browser.scroll_through.side_effect = BrowserError("script failed")
        browser.page_source.return_value = load_fixture("search_results.html")

        assert len(await LinkedInPages(browser).search_page("go", "Denmark", 0)) == 3

    async def test_search_redirected_to_login(self, browser, load_fixture):
        browser.page_source.return_value = load_fixture("login_page.html")

        with pytest.raises(AuthFailedError):
            await LinkedInPages(browser).search_page("go", "Denmark", 0)

    async def test_detail_page_interactions(self, browser, load_fixture):
        browser.wait_ready.return_value = selectors.DETAIL_READY_SELECTORS[0]
        browser.page_source.return_value = load_fixture("job_detail_en.html")

        html = await LinkedInPages(browser).detail_page("4012345678")

        assert "Senior Go Developer" in html
        browser.navigate.assert_awaited_once_with("https://www.linkedin.com/jobs/view/4012345678/")
        browser.expand_all.assert_awaited_once()
        browser.click_and_wait.assert_awaited_once()

    async def test_detail_page_interaction_failures_are_ignored(self, browser):
        browser.expand_all.side_effect = BrowserError("script failed")
        browser.click_and_wait.side_effect = BrowserError("modal failed")

        assert await LinkedInPages(browser).detail_page("4012345678") == "<html></html>"

    async def test_not_found_skips_interactions(self, browser, load_fixture):
        browser.wait_ready.return_value = ".not-found-404"
        browser.page_source.return_value = load_fixture("job_not_found.html")

        await LinkedInPages(browser).detail_page("4012345678")

        browser.expand_all.assert_not_called()
        browser.click_and_wait.assert_not_called()
