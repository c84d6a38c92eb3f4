# configs.py
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_mail import Mail

# bound to the application in app.create_app()
db = SQLAlchemy()
login = LoginManager()
mail = Mail()
