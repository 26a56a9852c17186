"""
Shared infrastructure: configuration, logging, exceptions, database access.
"""
