"""
Exception reporting: records, channels and the reporter.
"""
