"""
ASGI middleware and response helpers.
"""
