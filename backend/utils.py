import logging
import uuid

from config.settings import settings


def gen_session_id() -> str:
    return str(uuid.uuid4())


def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
