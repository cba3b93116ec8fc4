"""
smc_fusion: multi-timeframe Smart Money structure analysis fused with
external opinions into approve/reject trade signals, with adaptive
weight learning from closed-trade outcomes.
"""

__version__ = "0.1.0"
