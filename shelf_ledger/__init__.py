from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
import os
from shelf_ledger.utils.logger import get_logger

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()


def _env_flag(name, default):
    return os.environ.get(name, default).lower() in ('true', '1', 'yes', 'on')


def create_app(config_overrides=None):
    from pathlib import Path

    app = Flask(__name__)

    logger = get_logger("shelf_ledger")
    logger.info("Initializing Flask application")

    # Prefer an explicit DATABASE_URL env var; otherwise keep the SQLite
    # database inside the project's `instance/` directory.
    db_env = os.environ.get('DATABASE_URL')
    if db_env:
        app.config['SQLALCHEMY_DATABASE_URI'] = db_env
    else:
        base_dir = Path(__file__).parent.parent
        instance_dir = base_dir / 'instance'
        instance_dir.mkdir(parents=True, exist_ok=True)
        default_db_path = instance_dir / 'shelf_ledger.db'
        app.config['SQLALCHEMY_DATABASE_URI'] = f"sqlite:///{str(default_db_path.resolve())}"

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Republish channel availability after every durable stock mutation.
    # Bulk loaders may switch this off and run sync_all() afterwards.
    app.config['AVAILABILITY_SYNC_ENABLED'] = _env_flag('AVAILABILITY_SYNC_ENABLED', 'True')

    # Upper bound for movement history page size
    app.config['MOVEMENT_PAGE_SIZE_MAX'] = int(os.environ.get('MOVEMENT_PAGE_SIZE_MAX', '200'))

    if config_overrides:
        app.config.update(config_overrides)

    if not app.config['AVAILABILITY_SYNC_ENABLED']:
        logger.warning("Availability sync DISABLED - channel stock will drift until sync_all() runs")

    logger.debug(f"Database configured: {app.config['SQLALCHEMY_DATABASE_URI'].split(':', 1)[0]}")

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)

    logger.debug("Extensions initialized")

    # Import models to ensure they're registered with SQLAlchemy
    from shelf_ledger.data.core.warehouse import Warehouse
    from shelf_ledger.data.core.store import Store
    from shelf_ledger.data.core.catalog.product import Product
    from shelf_ledger.data.core.catalog.consumable import Consumable
    from shelf_ledger.data.inventory.locations.location import Location
    from shelf_ledger.data.inventory.stock.stock_record import StockRecord
    from shelf_ledger.data.inventory.stock.consumable_stock_record import ConsumableStockRecord
    from shelf_ledger.data.inventory.movements.stock_movement import StockMovement
    from shelf_ledger.data.inventory.availability.product_store import ProductStore

    logger.debug("Models imported and registered")

    logger.info("Flask application initialization complete")

    return app
