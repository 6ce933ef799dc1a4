import logging
from typing import Optional

from flask import Flask

from ai_agents.services.collaborators import TextGenerator

from .config.settings import load_config
from .controllers import api_controller
from .controllers.api_controller import api_blueprint


def create_app(config_name: str = "development", *, generator: Optional[TextGenerator] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_mapping(load_config(config_name))

    logging.basicConfig(level=logging.DEBUG if app.config.get("DEBUG") else logging.INFO)

    api_controller.init_services(app.config, generator=generator)
    app.register_blueprint(api_blueprint, url_prefix="/api")

    return app
