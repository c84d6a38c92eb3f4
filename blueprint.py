from index import main_bp
from routes.admin import admin_bp
from routes.auth import auth_bp
from routes.reports import reports_bp
from routes.requests import requests_bp
from routes.supplier import supplier_bp
from routes.upload import upload_bp


def blue_print(app):
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(supplier_bp)
    app.register_blueprint(requests_bp)
    app.register_blueprint(upload_bp)
    app.register_blueprint(reports_bp)
