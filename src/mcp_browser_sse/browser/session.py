"""
BrowserSession: the automation handle owned by exactly one SSE session.

All WebDriver work is blocking, so every call runs in a worker thread via
asyncio.to_thread. Calls on one handle are serialized; WebDriver sessions
are not safe for concurrent commands.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

from selenium.common.exceptions import NoSuchFrameException, WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from ..cleaners import interactive_elements
from ..constants import MAX_OBSERVE_ELEMENTS, NAVIGATION_TIMEOUT_MS
from ..errors import AutomationError
from ..utils import OperationLog, retry_op
from .instructions import InstructionResolver, substitute_variables

logger = logging.getLogger(__name__)

CLICK_WAIT_SECS = 10

# Evaluates a source string in global scope and resolves promises.
EVAL_SCRIPT = """
const src = arguments[0];
const done = arguments[arguments.length - 1];
Promise.resolve()
  .then(() => (0, eval)(src))
  .then(
    (value) => done({ ok: true, value: value === undefined ? null : value }),
    (err) => done({ ok: false, error: String((err && err.message) || err) })
  );
"""


def _key(name: Optional[str]) -> str:
    """Map a key name ("Enter", "page down") to a Selenium key; plain text passes through."""
    if not name:
        return Keys.ENTER
    attr = name.strip().upper().replace(" ", "_")
    return getattr(Keys, attr, name)


class BrowserSession:
    """
    Args:
        driver: Selenium WebDriver attached to this session's browser
        resolver: Maps natural-language instructions to elements
        browserbase_session_id: Remote browser identity (for release)
        browserbase_client: REST client that created the remote browser
        operation_log: Recent engine steps, surfaced on act/observe/screenshot failures
    """

    def __init__(
        self,
        driver,
        resolver: Optional[InstructionResolver] = None,
        browserbase_session_id: Optional[str] = None,
        operation_log: Optional[OperationLog] = None,
        browserbase_client=None,
    ):
        self.driver = driver
        self.resolver = resolver
        self.browserbase_session_id = browserbase_session_id
        self.browserbase_client = browserbase_client
        self.operation_log = operation_log or OperationLog(label=browserbase_session_id)
        self.closed = False
        self._lock = asyncio.Lock()

    async def _run(self, fn, *args):
        if self.closed:
            raise AutomationError("Browser session is closed")
        async with self._lock:
            return await asyncio.to_thread(fn, *args)

    # ------------------------------------------------------------------
    # Page access
    # ------------------------------------------------------------------

    async def goto(self, url: str, timeout_ms: int = NAVIGATION_TIMEOUT_MS) -> None:
        """Navigate and return once the DOM is parsed (eager page-load strategy)."""
        self.operation_log.record(f"navigate: {url} (timeout {timeout_ms}ms)")

        def _goto():
            self.driver.set_page_load_timeout(timeout_ms / 1000.0)
            self.driver.get(url)

        try:
            await self._run(_goto)
        except WebDriverException as e:
            self.operation_log.record(f"navigate failed: {e.__class__.__name__}")
            raise AutomationError(getattr(e, "msg", None) or str(e)) from e
        self.operation_log.record(f"navigated: {url}")

    async def content(self) -> str:
        return await self._run(lambda: retry_op(lambda: self.driver.page_source))

    async def body_text(self) -> str:
        return await self.evaluate("return document.body ? document.body.innerText : '';") or ""

    async def evaluate(self, script: str, *args) -> Any:
        """Run a function body (`return ...`) in the page."""
        return await self._run(self.driver.execute_script, script, *args)

    async def evaluate_expression(self, expression: str) -> Any:
        """
        Evaluate a JavaScript expression, awaiting it if it is a promise.

        Raises:
            AutomationError: if the expression throws or rejects.
        """
        outcome = await self._run(self.driver.execute_async_script, EVAL_SCRIPT, expression)
        if not isinstance(outcome, dict) or not outcome.get("ok"):
            error = outcome.get("error") if isinstance(outcome, dict) else repr(outcome)
            raise AutomationError(error or "Evaluation failed")
        return outcome.get("value")

    async def evaluate_in_frames(self, script: str) -> List[Any]:
        """
        Run `script` in the top document, then in each accessible child frame.

        Frames that cannot be entered or evaluated are skipped.
        """

        def _collect():
            driver = self.driver
            driver.switch_to.default_content()
            results = [driver.execute_script(script)]
            frame_count = len(driver.find_elements(By.CSS_SELECTOR, "iframe, frame"))
            for i in range(frame_count):
                try:
                    driver.switch_to.default_content()
                    frame = driver.find_elements(By.CSS_SELECTOR, "iframe, frame")[i]
                    driver.switch_to.frame(frame)
                    results.append(driver.execute_script(script))
                except (NoSuchFrameException, WebDriverException, IndexError) as e:
                    logger.debug(f"Skipping frame {i}: {e.__class__.__name__}")
                finally:
                    driver.switch_to.default_content()
            return results

        return await self._run(_collect)

    async def screenshot(self) -> bytes:
        self.operation_log.record("screenshot: viewport")
        data = await self._run(self.driver.get_screenshot_as_png)
        self.operation_log.record(f"screenshot: {len(data)} bytes")
        return data

    # ------------------------------------------------------------------
    # Instruction-driven operations
    # ------------------------------------------------------------------

    def _require_resolver(self) -> InstructionResolver:
        if self.resolver is None:
            raise AutomationError("No instruction resolver configured for this session")
        return self.resolver

    async def _elements(self) -> List[Dict[str, Any]]:
        html = await self.content()
        elements = interactive_elements(html, MAX_OBSERVE_ELEMENTS)
        self.operation_log.record(f"found {len(elements)} interactive elements")
        return elements

    async def observe(self, instruction: str) -> List[Dict[str, Any]]:
        resolver = self._require_resolver()
        self.operation_log.record(f"observe: {instruction}")
        elements = await self._elements()
        observations = await resolver.observe(instruction, elements)
        self.operation_log.record(f"observe matched {len(observations)} elements")
        return observations

    async def act(self, action: str, variables: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Perform one atomic action.

        Placeholders (%name%) are only filled in after the model picked the
        element, so variable values never leave the server.
        """
        resolver = self._require_resolver()
        self.operation_log.record(f"act: {action}")
        elements = await self._elements()
        plan = await resolver.resolve_action(action, elements)

        selector = plan["element"]["selector"]
        method = plan["method"]
        argument = substitute_variables(plan["argument"], variables) if plan["argument"] is not None else None
        self.operation_log.record(f"act: {method} on {selector}")

        def _perform():
            driver = self.driver
            if method == "click":
                el = WebDriverWait(driver, CLICK_WAIT_SECS).until(
                    EC.element_to_be_clickable((By.CSS_SELECTOR, selector))
                )
                el.click()
                return
            el = retry_op(lambda: driver.find_element(By.CSS_SELECTOR, selector))
            if method == "fill":
                el.clear()
                el.send_keys(argument or "")
            else:
                el.send_keys(_key(argument))

        try:
            await self._run(_perform)
        except WebDriverException as e:
            self.operation_log.record(f"act failed: {e.__class__.__name__}")
            raise AutomationError(getattr(e, "msg", None) or str(e)) from e
        self.operation_log.record(f"act done: {plan['description']}")
        return {"selector": selector, "method": method, "description": plan["description"]}

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Quit the WebDriver session. Idempotent."""
        if self.closed:
            return
        self.closed = True
        async with self._lock:
            try:
                await asyncio.to_thread(self.driver.quit)
            except WebDriverException as e:
                logger.debug(f"driver.quit failed for {self.browserbase_session_id}: {e}")


__all__ = ["BrowserSession"]
