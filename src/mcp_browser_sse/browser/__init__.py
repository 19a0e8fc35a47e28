"""
Browser automation backend.

One remote Browserbase browser per SSE session, driven through Selenium.
"""

from .browserbase import BrowserbaseClient, BrowserbaseSessionInfo
from .driver import create_webdriver
from .instructions import InstructionResolver, substitute_variables
from .session import BrowserSession
from .provider import BrowserbaseProvider, HandleProvider

__all__ = [
    "BrowserbaseClient",
    "BrowserbaseSessionInfo",
    "create_webdriver",
    "InstructionResolver",
    "substitute_variables",
    "BrowserSession",
    "BrowserbaseProvider",
    "HandleProvider",
]
