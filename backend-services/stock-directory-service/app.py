# backend-services/stock-directory-service/app.py
import logging
import os
from logging.handlers import RotatingFileHandler

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS

from config import Settings
from database.mongo_client import StockRepository
from helper_functions import data_envelope, error_envelope, list_envelope, serialize_document
from services.stock_service import StockDirectoryService, StockServiceError

SERVER_ERROR = "Server error"


# --- Logging Setup ---
def setup_logging(app, settings):
    """Configures logging for the Flask app and the service's module loggers."""
    log_level = getattr(logging, settings.log_level, logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if settings.log_dir:
        os.makedirs(settings.log_dir, exist_ok=True)
        log_file = os.path.join(settings.log_dir, "stock_directory_service.log")
        file_handler = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    app.logger.setLevel(log_level)
    app.logger.propagate = False
    # Clear existing handlers to avoid duplication
    for h in list(app.logger.handlers):
        app.logger.removeHandler(h)
    for h in handlers:
        app.logger.addHandler(h)

    # Module loggers that should emit through the same handlers
    module_names = [
        "database.mongo_client",
        "services.stock_service",
        "helper_functions",
    ]
    for name in module_names:
        module_logger = logging.getLogger(name)
        module_logger.setLevel(log_level)
        module_logger.propagate = False
        for h in list(module_logger.handlers):
            module_logger.removeHandler(h)
        for h in handlers:
            module_logger.addHandler(h)

    app.logger.info("Stock directory service logging initialized.")


def _service() -> StockDirectoryService:
    return current_app.extensions["stock_service"]


def _server_error(message: str, e: Exception):
    current_app.logger.error(f"{message}: {e}", exc_info=True)
    return jsonify(error_envelope(SERVER_ERROR)), 500


def _service_error(e: StockServiceError):
    return jsonify(error_envelope(e.message)), e.status_code


def register_routes(app):
    @app.route('/api/stocks', methods=['GET'])
    def get_all_stocks():
        try:
            return jsonify(list_envelope(_service().list_all())), 200
        except Exception as e:
            return _server_error("Error fetching all stocks", e)

    @app.route('/api/stocks/limit/', defaults={'limit': None}, methods=['GET'])
    @app.route('/api/stocks/limit/<limit>', methods=['GET'])
    def get_stocks_with_limit(limit):
        try:
            return jsonify(list_envelope(_service().list_limited(limit))), 200
        except Exception as e:
            return _server_error("Error fetching stocks with limit", e)

    @app.route('/api/stocks/top-magic-formula', methods=['GET'])
    def get_top_magic_formula():
        try:
            stocks = _service().top_magic_formula(request.args.get('limit'))
            return jsonify(list_envelope(stocks)), 200
        except Exception as e:
            return _server_error("Error fetching top magic formula stocks", e)

    @app.route('/api/stocks/top-graham', methods=['GET'])
    def get_top_graham():
        try:
            stocks = _service().top_graham(request.args.get('limit'))
            return jsonify(list_envelope(stocks)), 200
        except Exception as e:
            return _server_error("Error fetching top graham stocks", e)

    @app.route('/api/stocks/search', methods=['POST'])
    def search_stocks():
        try:
            stocks = _service().search(request.get_json(silent=True))
            return jsonify(list_envelope(stocks)), 200
        except StockServiceError as e:
            return _service_error(e)
        except Exception as e:
            return _server_error("Error searching stocks", e)

    @app.route('/api/stocks/sector/<sector_name>', methods=['GET'])
    def get_stocks_by_sector(sector_name):
        try:
            return jsonify(list_envelope(_service().filter_by_sector(sector_name))), 200
        except Exception as e:
            return _server_error("Error fetching stocks by sector", e)

    @app.route('/api/stocks/<symbol>', methods=['GET'])
    def get_stock(symbol):
        try:
            stock = _service().get_by_symbol(symbol)
            return jsonify(data_envelope(serialize_document(stock))), 200
        except StockServiceError as e:
            return _service_error(e)
        except Exception as e:
            return _server_error("Error fetching stock", e)

    @app.route('/api/stocks', methods=['POST'])
    def add_stock():
        try:
            stock = _service().create(request.get_json(silent=True))
            return jsonify(data_envelope(serialize_document(stock))), 201
        except StockServiceError as e:
            current_app.logger.info(f"Rejected new stock: {e.message}")
            return _service_error(e)
        except Exception as e:
            return _server_error("Error adding stock", e)

    @app.route('/api/stocks/<symbol>', methods=['PUT'])
    def update_stock(symbol):
        try:
            stock = _service().update(symbol, request.get_json(silent=True))
            return jsonify(data_envelope(serialize_document(stock))), 200
        except StockServiceError as e:
            return _service_error(e)
        except Exception as e:
            return _server_error("Error updating stock", e)

    @app.route('/api/stocks/<symbol>', methods=['DELETE'])
    def delete_stock(symbol):
        try:
            return jsonify(data_envelope(_service().delete(symbol))), 200
        except StockServiceError as e:
            return _service_error(e)
        except Exception as e:
            return _server_error("Error deleting stock", e)

    @app.route('/health', methods=['GET'])
    def health_check():
        """Standard health check endpoint; reports datastore reachability."""
        connected = _service().repository.ping()
        return jsonify({"status": "healthy", "database": "connected" if connected else "unavailable"}), 200

    @app.errorhandler(404)
    def route_not_found(e):
        return jsonify(error_envelope("Route not found")), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify(error_envelope("Method not allowed")), 405


def create_app(settings: Settings = None, repository: StockRepository = None) -> Flask:
    """
    Application factory.

    A repository may be injected (tests); otherwise one is built from the
    settings and connected. An unreachable MongoDB does not stop the app from
    starting.
    """
    settings = settings or Settings.from_env()
    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    setup_logging(app, settings)

    CORS(app, resources={r"/*": {"origins": settings.cors_origins}})

    if repository is None:
        repository = StockRepository.from_settings(settings)
    app.extensions["stock_service"] = StockDirectoryService(repository)

    register_routes(app)
    return app


if __name__ == '__main__':
    settings = Settings.from_env()
    app = create_app(settings)
    app.logger.info(f"Server running on port {settings.port}")
    app.run(host='0.0.0.0', port=settings.port)
