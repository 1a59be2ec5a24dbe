"""
Request context bootstrap for ASGI applications.

Tracing identity, ordered context providers, exception channels and a leveled
activity log, wired together per request.
"""

__version__ = "0.1.0"
