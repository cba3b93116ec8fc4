"""
Smart Money structure data models

Value types produced by the structure detectors for one candle series.
Everything here is derived and recomputed on every analysis cycle.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class Direction(str, Enum):
    """Trade direction implied by a structure or opinion."""

    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"


class Polarity(str, Enum):
    """Bullish/bearish flavour of an order block, FVG or void."""

    BULLISH = "BULLISH"
    BEARISH = "BEARISH"

    @property
    def direction(self) -> Direction:
        return Direction.BUY if self is Polarity.BULLISH else Direction.SELL


class Trend(str, Enum):
    """Per-timeframe trend classification."""

    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"

    @property
    def direction(self) -> Direction:
        if self is Trend.BULLISH:
            return Direction.BUY
        if self is Trend.BEARISH:
            return Direction.SELL
        return Direction.NEUTRAL


class MarketPhase(str, Enum):
    """Market phase, checked in priority order top to bottom."""

    MANIPULATION = "MANIPULATION"
    ACCUMULATION = "ACCUMULATION"
    DISTRIBUTION = "DISTRIBUTION"
    CONSOLIDATION = "CONSOLIDATION"


class SwingKind(str, Enum):
    HIGH = "HIGH"
    LOW = "LOW"


class ZoneSide(str, Enum):
    """Which side of price resting liquidity sits on."""

    ABOVE = "ABOVE"
    BELOW = "BELOW"


class ZoneKind(str, Enum):
    SWING_HIGH = "SWING_HIGH"
    SWING_LOW = "SWING_LOW"
    EQUAL_HIGHS = "EQUAL_HIGHS"
    EQUAL_LOWS = "EQUAL_LOWS"


class SweepKind(str, Enum):
    BULLISH_SWEEP = "BULLISH_SWEEP"
    BEARISH_SWEEP = "BEARISH_SWEEP"


class StructureKind(str, Enum):
    """Break of Structure (continuation) or Change of Character (reversal)."""

    BOS = "BOS"
    CHOCH = "CHOCH"


class PriceZone(str, Enum):
    PREMIUM = "PREMIUM"
    DISCOUNT = "DISCOUNT"
    EQUILIBRIUM = "EQUILIBRIUM"


@dataclass(frozen=True)
class SwingPoint:
    """
    Swing high or swing low point in market structure.

    Attributes:
        index: Position in candle sequence
        price: Swing point price level (candle high or low)
        kind: HIGH or LOW
    """
    index: int
    price: float
    kind: SwingKind


@dataclass
class SwingPoints:
    """Ordered swing highs and lows of one series."""
    highs: List[SwingPoint] = field(default_factory=list)
    lows: List[SwingPoint] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.highs and not self.lows


@dataclass(frozen=True)
class LiquidityZone:
    """
    Price level where resting stop/limit orders are inferred to cluster.

    Attributes:
        price: Zone price (midpoint for equal highs/lows)
        index: Candle index the zone is anchored to (newer member for a pair)
        side: ABOVE for buy-side liquidity, BELOW for sell-side liquidity
        strength: Relative volume strength in [0, 100]
        kind: Swing zone or equal highs/lows refinement
        first_index: Older member index of an equal pair (same as index otherwise)
    """
    price: float
    index: int
    side: ZoneSide
    strength: int
    kind: ZoneKind
    first_index: Optional[int] = None


@dataclass(frozen=True)
class LiquiditySweep:
    """
    Stop hunt: price pierced an equal-high/low zone and closed back.

    Attributes:
        kind: BULLISH_SWEEP (equal lows taken) or BEARISH_SWEEP (equal highs taken)
        zone_price: Price of the swept zone
        index: Index of the sweeping candle
        direction: BUY after a bullish sweep, SELL after a bearish one
        wick_size: Distance from the close to the pierced extreme
        strength: Strength inherited from the swept zone
    """
    kind: SweepKind
    zone_price: float
    index: int
    direction: Direction
    wick_size: float
    strength: int = 0

    @property
    def tag(self) -> str:
        return self.kind.value


@dataclass
class LiquidityMap:
    """All liquidity features of one series."""
    above: List[LiquidityZone] = field(default_factory=list)
    below: List[LiquidityZone] = field(default_factory=list)
    equal_highs: List[LiquidityZone] = field(default_factory=list)
    equal_lows: List[LiquidityZone] = field(default_factory=list)
    sweeps: List[LiquiditySweep] = field(default_factory=list)


@dataclass
class OrderBlock:
    """
    Order Block (OB) - last opposing candle before a strong move.

    The tested/mitigated flags are monotonic: once set they are never
    cleared.

    Attributes:
        index: Candle index of the order block
        high: Top of the block
        low: Bottom of the block
        open: Block candle open
        close: Block candle close
        kind: BULLISH (demand) or BEARISH (supply)
        strength: Size of the following move, in percent of its open
        tested: Price re-entered the block
        mitigated: Price re-entered and closed through the opposite edge
    """
    index: int
    high: float
    low: float
    open: float
    close: float
    kind: Polarity
    strength: float
    tested: bool = False
    mitigated: bool = False

    @property
    def tag(self) -> str:
        return f"{self.kind.value}_OB"

    @property
    def is_active(self) -> bool:
        return not self.mitigated

    @property
    def midpoint(self) -> float:
        return (self.high + self.low) / 2.0

    def mark_tested(self) -> None:
        self.tested = True

    def mark_mitigated(self) -> None:
        self.tested = True
        self.mitigated = True


@dataclass
class FairValueGap:
    """
    Fair Value Gap (FVG) - three-candle price imbalance.

    Attributes:
        index: Middle candle index of the 3-candle pattern
        top: Upper boundary of the gap
        bottom: Lower boundary of the gap
        kind: BULLISH (gap up) or BEARISH (gap down)
        partially_filled: A later candle intruded into the gap
        filled: A later candle intruded past the gap midpoint
    """
    index: int
    top: float
    bottom: float
    kind: Polarity
    partially_filled: bool = False
    filled: bool = False

    @property
    def size(self) -> float:
        return self.top - self.bottom

    @property
    def midpoint(self) -> float:
        return (self.top + self.bottom) / 2.0

    @property
    def tag(self) -> str:
        return f"{self.kind.value}_FVG"

    def mark_partially_filled(self) -> None:
        self.partially_filled = True

    def mark_filled(self) -> None:
        self.partially_filled = True
        self.filled = True


@dataclass(frozen=True)
class StructureEvent:
    """
    Break of Structure (BOS) or Change of Character (CHoCH) event.

    Attributes:
        kind: BOS or CHOCH
        reference_price: Swing level that was broken
        index: Candle index of the newer swing (BOS) or the break candle (CHoCH)
        direction: BUY for bullish events, SELL for bearish ones
        strength: Relative price change in percent
    """
    kind: StructureKind
    reference_price: float
    index: int
    direction: Direction
    strength: float

    @property
    def is_bullish(self) -> bool:
        return self.direction is Direction.BUY

    @property
    def tag(self) -> str:
        side = "BULLISH" if self.is_bullish else "BEARISH"
        return f"{side}_{self.kind.value}"


@dataclass(frozen=True)
class PremiumDiscount:
    """
    Position of the latest close within the trailing range.

    Attributes:
        high: Range high
        low: Range low
        range: high - low
        current_price: Latest close
        equilibrium: 50% level
        premium_start: 61.8% level
        discount_end: 38.2% level
        zone: Classification of current_price
        fibonacci: Retracement levels keyed by percentage label
    """
    high: float
    low: float
    range: float
    current_price: float
    equilibrium: float
    premium_start: float
    discount_end: float
    zone: PriceZone
    fibonacci: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class ManipulationFlag:
    """Abnormal wick on the latest candle relative to ATR."""
    detected: bool = False
    kind: Optional[Polarity] = None
    confidence: float = 0.0
    description: Optional[str] = None


@dataclass(frozen=True)
class LiquidityVoid:
    """Open-to-previous-close gap with little or no trading."""
    index: int
    top: float
    bottom: float
    size: float
    kind: Polarity


@dataclass(frozen=True)
class KeyLevel:
    """
    Most relevant institutional level of a timeframe.

    Attributes:
        kind: ORDER_BLOCK, FVG, EQUAL_HIGHS or EQUAL_LOWS
        direction: Direction a reaction at the level favours
        price: Level price (midpoint for zones)
        strength: Source structure strength
        index: Candle index the level is anchored to
    """
    kind: str
    direction: Direction
    price: float
    strength: float
    index: int


@dataclass
class TimeframeAnalysis:
    """
    Complete structural read of one timeframe for one analysis cycle.

    Not persisted; fully recomputed from the current candle window.
    """
    timeframe: str
    trend: Trend = Trend.NEUTRAL
    phase: MarketPhase = MarketPhase.CONSOLIDATION
    trend_confidence: float = 50.0
    swings: SwingPoints = field(default_factory=SwingPoints)
    liquidity: LiquidityMap = field(default_factory=LiquidityMap)
    order_blocks: List[OrderBlock] = field(default_factory=list)
    events: List[StructureEvent] = field(default_factory=list)
    fvgs: List[FairValueGap] = field(default_factory=list)
    premium_discount: Optional[PremiumDiscount] = None
    manipulation: ManipulationFlag = field(default_factory=ManipulationFlag)
    liquidity_voids: List[LiquidityVoid] = field(default_factory=list)
    key_level: Optional[KeyLevel] = None
    candle_count: int = 0
    last_close: Optional[float] = None
    last_volume: Optional[float] = None

    @property
    def bos_events(self) -> List[StructureEvent]:
        return [e for e in self.events if e.kind is StructureKind.BOS]

    @property
    def choch_events(self) -> List[StructureEvent]:
        return [e for e in self.events if e.kind is StructureKind.CHOCH]

    @property
    def active_order_blocks(self) -> List[OrderBlock]:
        return [ob for ob in self.order_blocks if ob.is_active]

    @property
    def has_active_order_block(self) -> bool:
        return any(ob.is_active for ob in self.order_blocks)

    @property
    def has_entry_setup(self) -> bool:
        """True when an FVG, a BOS or a liquidity sweep is present."""
        return bool(self.fvgs or self.bos_events or self.liquidity.sweeps)

    @property
    def is_directional(self) -> bool:
        return self.trend is not Trend.NEUTRAL
