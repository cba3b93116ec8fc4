"""
Confluence scoring
Counts independent supporting conditions for a trade (0-7)
"""

from dataclasses import dataclass
from typing import Dict

from smc_fusion.config.settings import FusionThresholds
from smc_fusion.models.signals import BiasDirection, MultiTimeframeAnalysis, TechnicalEstimate
from smc_fusion.models.structures import Trend

CONFLUENCE_FACTORS = (
    "directional_bias",
    "alignment",
    "volume",
    "technical",
    "timeframe_pair_aligned",
    "active_order_block",
    "entry_setup",
)


@dataclass(frozen=True)
class ConfluenceScore:
    """Confluence factors by name and the number that hold."""
    factors: Dict[str, bool]

    @property
    def score(self) -> int:
        return sum(1 for held in self.factors.values() if held)

    @property
    def maximum(self) -> int:
        return len(self.factors)


def _pair_aligned(mtf: MultiTimeframeAnalysis, first: int, second: int) -> bool:
    if second >= len(mtf.order):
        return False
    a = mtf.get(mtf.order[first])
    b = mtf.get(mtf.order[second])
    return a is not None and b is not None and a.trend is b.trend and a.trend is not Trend.NEUTRAL


def calculate_confluence(
    mtf: MultiTimeframeAnalysis,
    technical: TechnicalEstimate,
    thresholds: FusionThresholds
) -> ConfluenceScore:
    """
    Score the confluence of a proposed trade.

    Factors, one point each:
        directional_bias: overall bias is BULLISH or BEARISH
        alignment: alignment confidence >= alignment floor
        volume: last confirmation-timeframe volume above the volume floor
        technical: technical confidence above the technical floor
        timeframe_pair_aligned: coarsest/second or second/third timeframes
            share a non-neutral trend
        active_order_block: any timeframe holds an unmitigated order block
        entry_setup: an FVG, BOS or sweep exists on one of the two finest
            timeframes

    The confirmation timeframe is the third configured one (the finest when
    fewer are configured).
    """
    order = mtf.order
    confirmation = mtf.get(order[2] if len(order) > 2 else order[-1])
    volume = confirmation.last_volume if confirmation is not None else None

    factors = {
        "directional_bias": mtf.overall_bias.direction in (BiasDirection.BULLISH, BiasDirection.BEARISH),
        "alignment": mtf.alignment.confidence >= thresholds.confluence_alignment_floor,
        "volume": volume is not None and volume > thresholds.confluence_volume_floor,
        "technical": technical.confidence > thresholds.confluence_technical_floor,
        "timeframe_pair_aligned": _pair_aligned(mtf, 0, 1) or _pair_aligned(mtf, 1, 2),
        "active_order_block": any(a.has_active_order_block for a in mtf.timeframes.values()),
        "entry_setup": any(a.has_entry_setup for a in mtf.finer(2)),
    }
    return ConfluenceScore(factors=factors)
