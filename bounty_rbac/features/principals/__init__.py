"""
Principal feature module.

Team members (admin team, company employees, researcher-team members) and their
role bindings, including bulk assignment and bulk activation.
"""
