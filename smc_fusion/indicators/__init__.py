"""
Price-action indicators: market structure, liquidity, order blocks, premium/discount
"""
