"""
Browser automation over MCP, served on HTTP + Server-Sent Events.

Every client that opens `GET /sse` gets its own session. A session owns
exactly one remote browser and one MCP protocol server; nothing is shared
between sessions except the process. Posted messages find their session by
the `sessionId` query parameter, so two agents connected at the same time
never see each other's browser, screenshots or tool results.

## Credentials

A connection is only accepted when all three keys are present:
BROWSERBASE_API_KEY, BROWSERBASE_PROJECT_ID and OPENAI_API_KEY. Each can
come from the query string, a request header or the server environment,
in that order of precedence. Without them the browser is never started.

## Lifecycle

Connect -> browser provisioned -> session registered -> tools called ->
client leaves (or the stream errors) -> session unregistered, browser
released, screenshots evicted. Teardown runs exactly once.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
