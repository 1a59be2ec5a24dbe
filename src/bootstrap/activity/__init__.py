"""
Activity log: leveled domain events tied to the current request.
"""
