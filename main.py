from app.logging_config import setup_logging
from app.routes import create_app


setup_logging()

# ASGI entrypoint: `uvicorn main:app`
app = create_app()


def run() -> None:
    import uvicorn

    # log_config=None keeps the handlers installed by setup_logging().
    uvicorn.run("main:app", host="0.0.0.0", port=8000, log_config=None)


if __name__ == "__main__":
    run()
