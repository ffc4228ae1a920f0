#!/usr/bin/env python3
"""
Main build orchestrator for the stock ledger
Handles table creation, demo data insertion and the availability re-sync
"""

from contextlib import nullcontext
from flask import current_app, has_app_context
from shelf_ledger import create_app, db
from shelf_ledger.utils.logger import get_logger

logger = get_logger("shelf_ledger.build")


def build_models():
    """
    Create all ledger tables

    Models are registered by create_app(); create_all() is a no-op for
    tables that already exist.
    """
    logger.info("Building stock ledger models")
    db.create_all()
    logger.info("All database tables created")


def build_database(enable_demo_data=False, sync_all=False, warehouse_id=None, app=None):
    """
    Main build orchestrator

    Args:
        enable_demo_data (bool): Load the demo warehouse from debug/data
        sync_all (bool): Republish availability for every stocked product afterwards
        warehouse_id (int, optional): Limit the re-sync to one warehouse
        app (Flask, optional): Existing application; a new one is created otherwise

    Returns:
        dict: Summary of what ran
    """
    app = app or create_app()
    summary = {}

    # Reuse an already pushed context for the same app (tests, shell sessions)
    in_context = has_app_context() and current_app._get_current_object() is app

    with nullcontext() if in_context else app.app_context():
        logger.info(f"Starting database build - demo data: {enable_demo_data}, sync all: {sync_all}")

        build_models()
        summary['tables'] = sorted(db.metadata.tables)

        if enable_demo_data:
            from shelf_ledger.debug.debug_data_manager import insert_demo_data
            logger.info("Inserting demo data...")
            summary['demo_data'] = insert_demo_data()

        if sync_all:
            from shelf_ledger.buisness.inventory.availability.availability_publisher import AvailabilityPublisher
            summary['synced_pairs'] = AvailabilityPublisher().sync_all(warehouse_id=warehouse_id)

        logger.info("Database build completed successfully")

    return summary


def build_models_only():
    """Create tables without inserting data"""
    return build_database(enable_demo_data=False)


if __name__ == '__main__':
    import sys

    build_database(enable_demo_data='--demo-data' in sys.argv[1:])
