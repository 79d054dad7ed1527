"""
Role composition feature module.

Custom roles are named bundles of permissions owned by one organization.
"""
