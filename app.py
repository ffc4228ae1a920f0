#!/usr/bin/env python3
"""
Run script for the stock ledger
"""

import argparse
import sys
from dotenv import load_dotenv

# Load environment variables from .env file before the logger is configured
load_dotenv()

from shelf_ledger import create_app
from shelf_ledger.build import build_database
from shelf_ledger.utils.logger import get_logger

logger = get_logger("shelf_ledger.run")


def parse_arguments():
    """Parse command line arguments for the build"""
    parser = argparse.ArgumentParser(description='Shelf Ledger - physical stock ledger and location hierarchy')
    parser.add_argument('--build-only', action='store_true',
                        help='Create database tables only, do not insert demo data or re-sync')
    parser.add_argument('--demo-data', action='store_true',
                        help='Insert the demo warehouse (hierarchy, catalog, opening stock)')
    parser.add_argument('--sync-all', action='store_true',
                        help='Republish channel availability for every stocked product')
    parser.add_argument('--warehouse-id', type=int, default=None,
                        help='Limit --sync-all to one warehouse')

    return parser.parse_args()


if __name__ == '__main__':
    args = parse_arguments()

    logger.debug("Starting Shelf Ledger build...")

    if args.warehouse_id is not None and not args.sync_all:
        logger.warning("--warehouse-id has no effect without --sync-all")

    app = create_app()

    summary = build_database(
        enable_demo_data=args.demo_data and not args.build_only,
        sync_all=args.sync_all and not args.build_only,
        warehouse_id=args.warehouse_id,
        app=app,
    )

    logger.info(f"Build summary: {summary}")
    sys.exit(0)
