"""Server entry point for docchat.

The FastAPI routes and the NiceGUI chat page share one uvicorn process.
Settings come from the environment, with a .env file loaded first.
"""

import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logging.basicConfig(
    level=LOG_LEVEL,
    format=LOG_FORMAT,
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("docchat")


def main() -> None:
    """Serve the chat API and the chat page."""
    import uvicorn
    from nicegui import ui

    from docchat.api.app import create_app
    from docchat.ui import chat_page  # noqa: F401 - page registers on import

    app = create_app()
    ui.run_with(
        app,
        title="Document Chat",
        storage_secret=os.getenv("NICEGUI_STORAGE_SECRET", "docchat-secret"),
    )

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    logger.info(f"Serving chat page and API on http://{host}:{port} (docs at /docs)")
    uvicorn.run(app, host=host, port=port, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
