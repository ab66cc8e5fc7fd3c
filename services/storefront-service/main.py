"""Main application entry point."""
import uvicorn

from application import create_app
from logging_config import setup_logging

# Setup structured logging
setup_logging()

app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
