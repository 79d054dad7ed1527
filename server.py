import uvicorn  # type: ignore

from bounty_rbac.core import config
from bounty_rbac.utils import get_logger

log = get_logger(__name__)

if __name__ == "__main__":
    log.info("Running bounty RBAC server on %s:%s", config.SERVER_HOST, config.SERVER_PORT)
    uvicorn.run(
        "bounty_rbac.main:app",
        reload=config.SERVER_RELOAD,
        host=config.SERVER_HOST,
        port=config.SERVER_PORT,
    )
