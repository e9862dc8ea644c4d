"""ASGI entrypoint for the game API."""

import uvicorn

from ask_match.api.app import create_app
from ask_match.containers import build_container

app = create_app(build_container())


def main() -> None:
    """Serve the app in a single process so round timers share one loop."""
    uvicorn.run(app, host="0.0.0.0", port=8000)  # noqa: S104


if __name__ == "__main__":
    main()
