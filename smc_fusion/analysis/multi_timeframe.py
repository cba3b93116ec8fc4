"""
Multi-timeframe aggregation for HTF→MTF→LTF structure analysis.

Runs the structure detector on every configured timeframe independently,
then derives the overall bias from the two coarsest timeframes, the
alignment across all of them, and the named readiness rules.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from smc_fusion.analysis.structure import StructureDetector
from smc_fusion.core.exceptions import MarketDataError
from smc_fusion.models.candle import Candle
from smc_fusion.models.learning import WeightState
from smc_fusion.models.signals import (
    Alignment,
    BiasDirection,
    MultiTimeframeAnalysis,
    OverallBias,
    Readiness,
)
from smc_fusion.models.structures import TimeframeAnalysis, Trend

logger = logging.getLogger(__name__)

ALIGNED_BIAS_CONFIDENCE = 95.0
SINGLE_BIAS_CONFIDENCE = 75.0
CONFLICTED_BIAS_CONFIDENCE = 30.0
NEUTRAL_BIAS_CONFIDENCE = 50.0
READY_MIN_BIAS_CONFIDENCE = 70.0

READINESS_RULES = (
    "htf_bias",
    "mtf_bias",
    "htf_mtf_not_conflicted",
    "confirmation_bias",
    "entry_level",
    "high_confidence",
)


def determine_overall_bias(
    higher: Optional[TimeframeAnalysis],
    lower: Optional[TimeframeAnalysis]
) -> OverallBias:
    """
    Overall bias from the two coarsest timeframes.

    Args:
        higher: Coarsest timeframe analysis
        lower: Second-coarsest timeframe analysis

    Returns:
        OverallBias: 95 when both agree on a direction, 75 when exactly one
        of them has a direction, CONFLICTED 30 when they disagree,
        NEUTRAL 50 otherwise. NEUTRAL 0 when either analysis is missing.
    """
    if higher is None or lower is None:
        return OverallBias(BiasDirection.NEUTRAL, 0.0, "Missing higher-timeframe analysis")

    high_trend, low_trend = higher.trend, lower.trend
    label = f"{higher.timeframe}/{lower.timeframe}"

    if high_trend is low_trend and high_trend is not Trend.NEUTRAL:
        return OverallBias(
            BiasDirection(high_trend.value),
            ALIGNED_BIAS_CONFIDENCE,
            f"Strong {high_trend.value} trend with {label} aligned"
        )

    if (high_trend is Trend.NEUTRAL) != (low_trend is Trend.NEUTRAL):
        directional, neutral = (higher, lower) if low_trend is Trend.NEUTRAL else (lower, higher)
        return OverallBias(
            BiasDirection(directional.trend.value),
            SINGLE_BIAS_CONFIDENCE,
            f"{directional.trend.value} trend on {directional.timeframe}, {neutral.timeframe} neutral"
        )

    if high_trend is not Trend.NEUTRAL and low_trend is not Trend.NEUTRAL:
        return OverallBias(
            BiasDirection.CONFLICTED,
            CONFLICTED_BIAS_CONFIDENCE,
            f"Conflict: {higher.timeframe} {high_trend.value}, "
            f"{lower.timeframe} {low_trend.value} - do not trade"
        )

    return OverallBias(BiasDirection.NEUTRAL, NEUTRAL_BIAS_CONFIDENCE, "No clear bias")


def check_alignment(analyses: Sequence[TimeframeAnalysis]) -> Alignment:
    """
    Majority trend across timeframes.

    Confidence is the majority fraction of all analyzed timeframes in
    percent, so it reaches 100 only when every timeframe shares one
    non-neutral trend. A bullish/bearish tie is NEUTRAL 50; no analyses is
    NEUTRAL 0.
    """
    trends = [a.trend for a in analyses]
    if not trends:
        return Alignment(aligned=False, direction=Trend.NEUTRAL, confidence=0.0)

    bullish = trends.count(Trend.BULLISH)
    bearish = trends.count(Trend.BEARISH)

    if bullish > bearish:
        return Alignment(
            aligned=bullish == len(trends),
            direction=Trend.BULLISH,
            confidence=bullish / len(trends) * 100
        )
    if bearish > bullish:
        return Alignment(
            aligned=bearish == len(trends),
            direction=Trend.BEARISH,
            confidence=bearish / len(trends) * 100
        )
    return Alignment(aligned=False, direction=Trend.NEUTRAL, confidence=NEUTRAL_BIAS_CONFIDENCE)


def weighted_alignment_confidence(
    analyses: Sequence[TimeframeAnalysis],
    weights: WeightState
) -> float:
    """
    Alignment confidence with each timeframe counted by its learned weight.

    With uniform weights this equals `check_alignment(...).confidence`.
    """
    if not analyses:
        return 0.0

    total = sum(weights.timeframe_weight(a.timeframe) for a in analyses)
    if total <= 0:
        return 0.0

    bullish = sum(weights.timeframe_weight(a.timeframe) for a in analyses if a.trend is Trend.BULLISH)
    bearish = sum(weights.timeframe_weight(a.timeframe) for a in analyses if a.trend is Trend.BEARISH)

    if bullish == bearish:
        return NEUTRAL_BIAS_CONFIDENCE
    return max(bullish, bearish) / total * 100


def is_ready_to_trade(
    timeframes: Mapping[str, TimeframeAnalysis],
    order: Sequence[str],
    bias: OverallBias
) -> Readiness:
    """
    Evaluate the structural readiness rules.

    Rules, with `order` coarsest first:
        htf_bias: coarsest timeframe has a trend
        mtf_bias: second timeframe has a trend
        htf_mtf_not_conflicted: overall bias is not CONFLICTED
        confirmation_bias: third timeframe has a trend
        entry_level: finest timeframe exposes a key level
        high_confidence: overall bias confidence >= 70
    """
    def tf(position: int) -> Optional[TimeframeAnalysis]:
        if not -len(order) <= position < len(order):
            return None
        return timeframes.get(order[position])

    htf, mtf, confirmation, entry = tf(0), tf(1), tf(2), tf(-1)

    rules = {
        "htf_bias": htf is not None and htf.is_directional,
        "mtf_bias": mtf is not None and mtf.is_directional,
        "htf_mtf_not_conflicted": bias.direction is not BiasDirection.CONFLICTED,
        "confirmation_bias": confirmation is not None and confirmation.is_directional,
        "entry_level": entry is not None and entry.key_level is not None,
        "high_confidence": bias.confidence >= READY_MIN_BIAS_CONFIDENCE,
    }

    missing = [name for name in READINESS_RULES if not rules[name]]
    return Readiness(ready=not missing, rules=rules, missing_rules=missing)


class MultiTimeframeAggregator:
    """
    Runs the structure detector per timeframe and aggregates the results.

    Example:
        ```python
        aggregator = MultiTimeframeAggregator(["4h", "1h", "15m", "5m"])
        mtf = aggregator.analyze({
            "4h": candles_4h, "1h": candles_1h,
            "15m": candles_15m, "5m": candles_5m,
        })
        if mtf.overall_bias.direction is BiasDirection.CONFLICTED:
            ...
        ```
    """

    def __init__(
        self,
        timeframes: Sequence[str],
        detector: Optional[StructureDetector] = None
    ):
        if len(timeframes) < 2:
            raise ValueError("At least two timeframes are required")
        self.timeframes: List[str] = list(timeframes)
        self.detector = detector or StructureDetector()

    def analyze(self, market_data: Mapping[str, Sequence[Candle]]) -> MultiTimeframeAnalysis:
        """
        Analyze every configured timeframe.

        Args:
            market_data: Timeframe label -> ordered candles. Empty or short
                series are allowed and analyze as neutral.

        Returns:
            MultiTimeframeAnalysis

        Raises:
            MarketDataError: If a configured timeframe is absent from market_data
        """
        missing = [tf for tf in self.timeframes if tf not in market_data]
        if missing:
            raise MarketDataError(f"Market data missing for timeframes: {missing}")

        analyses: Dict[str, TimeframeAnalysis] = {
            tf: self.detector.analyze(market_data[tf], tf) for tf in self.timeframes
        }

        bias = determine_overall_bias(
            analyses.get(self.timeframes[0]), analyses.get(self.timeframes[1])
        )
        alignment = check_alignment([analyses[tf] for tf in self.timeframes])
        readiness = is_ready_to_trade(analyses, self.timeframes, bias)

        logger.info(
            f"MTF analysis: bias={bias.direction.value} ({bias.confidence:.0f}%), "
            f"alignment={alignment.direction.value} ({alignment.confidence:.0f}%), "
            f"ready={readiness.ready}"
        )
        if readiness.missing_rules:
            logger.debug(f"Readiness rules not met: {readiness.missing_rules}")

        return MultiTimeframeAnalysis(
            timeframes=analyses,
            order=list(self.timeframes),
            overall_bias=bias,
            alignment=alignment,
            readiness=readiness
        )
