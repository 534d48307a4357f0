"""
Core business logic for Inkform.
"""
