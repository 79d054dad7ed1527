"""
Authorization feature module.

Resolves a principal's effective permission set and guards protected actions.
"""
