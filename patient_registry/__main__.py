import uvicorn

from patient_registry.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "patient_registry.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
