import uvicorn

from .settings import get_settings


def main() -> None:
    s = get_settings()
    uvicorn.run("bookinfo.api:app", host=s.HOST, port=s.PORT, log_level=s.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
