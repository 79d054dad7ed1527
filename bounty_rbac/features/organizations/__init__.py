"""
Organization (tenant) feature module.

Organizations are the scope within which roles and bindings live.
"""
