"""
Partner Ledger

Order management and partner profit-distribution service.
"""
