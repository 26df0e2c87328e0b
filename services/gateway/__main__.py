import uvicorn

from .config import config


def main() -> None:
    uvicorn.run(
        "services.gateway.main:app",
        host=config.LISTENER_HOST,
        port=config.LISTENER_PORT,
        workers=config.UVICORN_WORKERS,
        log_config=None,
    )


if __name__ == "__main__":
    main()
