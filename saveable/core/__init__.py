"""
Core building blocks: database base and sessions, type registry, errors, logging.
"""
