import uvicorn

from post_analyzer.core.app_factory import create_app
from post_analyzer.core.config import settings

app = create_app()


def run() -> None:
    """Serve the API on ``API_HOST:API_PORT``."""
    uvicorn.run(app, host=settings.api.host, port=settings.api.port, log_config=None)


if __name__ == "__main__":
    run()
