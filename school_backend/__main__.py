import uvicorn

from .config import settings


def main() -> None:
    # Reload needs an import string rather than the app object.
    uvicorn.run("school_backend.app:app", host=settings.host, port=settings.port, reload=settings.reload)


if __name__ == "__main__":
    main()
