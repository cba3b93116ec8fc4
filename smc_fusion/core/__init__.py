"""
Core infrastructure shared by every pipeline stage
"""
