"""
Token decoding helpers.
"""
