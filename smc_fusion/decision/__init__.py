"""
Decision fusion: confluence scoring, named criteria, gating policy and the engine
"""
