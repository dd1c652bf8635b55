import uvicorn

from app_factory import create_app
from configs import app_config

app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=app_config.HOST, port=app_config.PORT, log_config=None)
