"""Run the image optimizer API with uvicorn."""

import uvicorn

from image_optimizer.app_logging import configure_logging
from image_optimizer.config import Settings


def main() -> None:
    """Start the HTTP server on the configured host and port."""
    settings = Settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "image_optimizer.api.asgi:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
