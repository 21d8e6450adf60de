"""Main entry point for the USSD flow engine API server."""

import os

from dotenv import load_dotenv

# Load environment variables from .env file BEFORE reading settings
load_dotenv()

from flow_config import discover_flow_files, load_flow_from_file, load_settings_from_env  # noqa: E402
from flow_api import create_app  # noqa: E402
from flow_core import configure_logging  # noqa: E402

settings = load_settings_from_env()
configure_logging(settings.log_level, settings.log_format)

# Publish every flow definition found in the flows directory
flows_dir = settings.flows_dir or "flows"
flows = [load_flow_from_file(path) for path in discover_flow_files(flows_dir)]

app = create_app(settings=settings, flows=flows)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
