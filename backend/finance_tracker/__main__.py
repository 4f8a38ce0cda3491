import uvicorn

from .config import HOST, PORT
from .logging_config import configure_logging


def main() -> None:
    configure_logging()
    uvicorn.run(
        "finance_tracker.main:create_app",
        factory=True,
        host=HOST,
        port=PORT,
        log_config=None,
    )


if __name__ == "__main__":
    main()
