"""
Business layer for the stock ledger.
Contains the location tree, ledger, transfer and availability logic
separated from data persistence concerns.
"""
