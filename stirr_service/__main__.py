import uvicorn

from stirr_service.config import get_settings


def main() -> None:
    """Serve the application on HOST:PORT."""
    settings = get_settings()
    uvicorn.run(
        "stirr_service.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
