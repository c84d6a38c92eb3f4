import os
from flask import Flask
from dotenv import load_dotenv
from configs import db, login, mail
from config import CONFIG_BY_NAME, DevelopmentConfig
from blueprint import blue_print
from admin.setup import init_admin
from dao import user as user_dao
from utils.errors import AuthenticationError, register_error_handlers
from utils.logging import configure_logging, init_request_logging

load_dotenv()


def create_app(config_object=None):
    if config_object is None:
        env = os.getenv("APP_ENV") or os.getenv("FLASK_ENV") or "development"
        config_object = CONFIG_BY_NAME.get(env, DevelopmentConfig)

    app = Flask(__name__)
    app.config.from_object(config_object)
    configure_logging(app.config["LOG_LEVEL"])

    db.init_app(app)
    login.init_app(app)
    mail.init_app(app)

    @login.user_loader
    def load_user(user_id):
        return user_dao.get_active_user(user_id)

    @login.unauthorized_handler
    def unauthorized():
        raise AuthenticationError("Login required.")

    register_error_handlers(app)
    init_request_logging(app)
    init_admin(app)  # back office at /manage
    blue_print(app)

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)
    return app


app = create_app()

if __name__ == "__main__":
    app.run(debug=app.config.get("DEBUG", False), host="0.0.0.0", port=5000)
