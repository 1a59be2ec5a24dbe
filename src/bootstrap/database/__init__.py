"""
Async SQLAlchemy persistence for activity and exception records.
"""
