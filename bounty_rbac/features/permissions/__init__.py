"""
Permission registry feature module.

Central catalog of atomic ``category:action`` capabilities that custom roles
are composed from.
"""
