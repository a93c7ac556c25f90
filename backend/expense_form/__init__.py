from flask import Flask
from flask_cors import CORS

from expense_form.config import Config
from expense_form.extensions import init_mongo


def create_app(config_class=Config, mongo_client=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Disable strict slashes to prevent 308 redirects that break CORS preflight
    app.url_map.strict_slashes = False

    CORS(
        app,
        supports_credentials=True,
        resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}}
    )
    init_mongo(app, client=mongo_client)

    from expense_form.expenses.routes import expenses_bp
    app.register_blueprint(expenses_bp, url_prefix='/api/v1')

    return app
