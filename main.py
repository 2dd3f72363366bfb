"""Launch the route risk FastAPI server."""

import uvicorn

from routerisk.config import Settings, configure_logging


def main():
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run("routerisk.server:app", host="0.0.0.0", port=8000, reload=True)


if __name__ == "__main__":
    main()
