"""WebDriver creation for remote Browserbase sessions."""

import logging

from selenium import webdriver
from selenium.webdriver.remote.client_config import ClientConfig

from .browserbase import BrowserbaseSessionInfo

logger = logging.getLogger(__name__)

SIGNING_KEY_HEADER = "x-bb-signing-key"


def client_config_for(info: BrowserbaseSessionInfo) -> ClientConfig:
    """Every WebDriver call is authenticated with the session's signing key."""
    return ClientConfig(
        remote_server_addr=info.selenium_remote_url,
        extra_headers={SIGNING_KEY_HEADER: info.signing_key},
    )


def create_webdriver(info: BrowserbaseSessionInfo) -> webdriver.Remote:
    """
    Attach Selenium to a running Browserbase session.

    Page loads use the "eager" strategy: `get()` returns once the DOM is
    parsed (DOMContentLoaded), without waiting for images and subresources.
    """
    options = webdriver.ChromeOptions()
    options.page_load_strategy = "eager"

    driver = webdriver.Remote(
        command_executor=info.selenium_remote_url,
        options=options,
        client_config=client_config_for(info),
    )
    logger.debug(f"WebDriver attached to Browserbase session {info.session_id}")
    return driver


__all__ = ["client_config_for", "create_webdriver"]
