"""
Shared application utilities.
"""
