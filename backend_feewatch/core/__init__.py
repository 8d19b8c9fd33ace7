"""
Core utilities: exceptions shared by the ledger, claims and risk packages.
"""
