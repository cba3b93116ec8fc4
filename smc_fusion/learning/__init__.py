"""Adaptive weight learning from closed-trade outcomes."""

from smc_fusion.learning.learner import AdaptiveWeightLearner
from smc_fusion.learning.report import build_learning_report
from smc_fusion.learning.store import WeightStore

__all__ = ["AdaptiveWeightLearner", "WeightStore", "build_learning_report"]
