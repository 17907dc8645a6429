import uvicorn  # type: ignore

from app.core import config
from app.utils import get_logger

log = get_logger(__name__)

if __name__ == "__main__":
    log.info(f"Running server on {config.HOST}:{config.PORT} ({config.ENVIRONMENT})")
    uvicorn.run("app.main:app", reload=config.IS_DEVELOPMENT, host=config.HOST, port=config.PORT)
