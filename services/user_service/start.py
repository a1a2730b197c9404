import uvicorn

from services.user_service.config.config import config
from services.user_service.main import app
from shared.libs.observability.logger_config import log

if __name__ == "__main__":
    log.info("Starting user-service", host=config.APP_HOST, port=config.APP_PORT)
    uvicorn.run(app, host=config.APP_HOST, port=config.APP_PORT)
