"""Application entry point for the boarding & ICU API."""

import logging

from vetboarding import config
from vetboarding.webapp import create_app

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = create_app()


if __name__ == "__main__":
    app.run(debug=True)
