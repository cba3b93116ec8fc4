"""
Trade setup pricing: entry, stop loss and take profit
"""
