"""Run the API with uvicorn: ``python -m warbler``."""

import uvicorn

from warbler.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "warbler.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug and not settings.is_production,
    )


if __name__ == "__main__":
    main()
