"""
Market data adapters
"""
