"""
Shared helpers: exception types and decorators.
"""
