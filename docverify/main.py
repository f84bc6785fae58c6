"""Application entry point for the document verification API server."""

import uvicorn

from docverify.api.app import create_app
from docverify.utils.config import AppConfig, load_config
from docverify.utils.logger import setup_logging


def main(config: AppConfig | None = None) -> None:
    """Start the FastAPI application server."""
    config = config or load_config()
    setup_logging(config.log_level)
    uvicorn.run(create_app(config), host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
