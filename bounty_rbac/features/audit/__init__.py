"""
Audit trail for access-control changes.
"""
