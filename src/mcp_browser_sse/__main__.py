"""Process entry point: `python -m mcp_browser_sse` or `mcp-browser-sse`."""

import logging

import uvicorn
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def main() -> None:
    load_dotenv()

    from .config import get_env_config
    from .server import create_app

    config = get_env_config()
    logging.basicConfig(
        level=getattr(logging, config["log_level"], logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = create_app()
    logger.info(f"MCP SSE server listening on http://{config['host']}:{config['port']}/sse")
    uvicorn.run(app, host=config["host"], port=config["port"], log_level=config["log_level"].lower())


if __name__ == "__main__":
    main()
