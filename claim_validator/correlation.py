# =============================================================================
# POLYMARKET CLAIM VALIDATOR - CORRELATION ENGINE
# =============================================================================
#
# PURPOSE:
# Quantify whether a claimed strategy's return series is novel relative to
# the strategies already in the portfolio.
#
# CORPUS:
# <base_dir>/strategy-returns/<family>-returns.json
# One JSON array of StrategyReturns per family (btc, weather).
# One record per strategy name, replaced in place on re-ingestion.
#
# SCORING:
# - Average Pearson correlation per family
# - Uncorrelated iff |btc| < 0.3 and |weather| < 0.3
# - Diversification score = round_half_up(10 * (1 - mean(|btc|, |weather|)))
#   clamped to [0, 10]
#
# The engine never persists CorrelationResult.
#
# =============================================================================

import json
import logging
import math
from pathlib import Path
from typing import Dict, List, Sequence, Union

from shared.enums import ReturnFamily

from .models import CorrelationResult, StrategyReturns, utc_now

logger = logging.getLogger(__name__)

RETURNS_DIRNAME = "strategy-returns"

MIN_RETURN_POINTS = 10
MIN_OVERLAP_POINTS = 5
UNCORRELATED_THRESHOLD = 0.3
HIGH_CORRELATION_THRESHOLD = 0.7
LIMITED_BENEFIT_THRESHOLD = 0.5
NEUTRAL_DIVERSIFICATION_SCORE = 5

INSUFFICIENT_DATA_ANALYSIS = (
    "Insufficient return data for correlation analysis "
    f"(need at least {MIN_RETURN_POINTS} data points)"
)


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson correlation over the first min(len(x), len(y)) observations.

    Returns 0.0 for fewer than 5 overlapping points or zero variance.
    """
    n = min(len(x), len(y))
    if n < MIN_OVERLAP_POINTS:
        return 0.0

    xs = x[:n]
    ys = y[:n]
    mean_x = sum(xs) / n
    mean_y = sum(ys) / n

    numerator = 0.0
    sum_sq_x = 0.0
    sum_sq_y = 0.0
    for xi, yi in zip(xs, ys):
        dx = xi - mean_x
        dy = yi - mean_y
        numerator += dx * dy
        sum_sq_x += dx * dx
        sum_sq_y += dy * dy

    denominator = math.sqrt(sum_sq_x * sum_sq_y)
    if denominator == 0:
        return 0.0

    r = numerator / denominator
    if not math.isfinite(r):
        return 0.0

    # Clamp float noise so self-correlation never exceeds 1.
    return max(-1.0, min(1.0, r))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _family_key(family: Union[ReturnFamily, str]) -> str:
    return family.value if isinstance(family, ReturnFamily) else str(family)


class CorrelationEngine:
    """
    Compares new return series against the stored strategy corpus.
    """

    def __init__(self, base_dir: Union[str, Path]):
        """
        Initialize the engine and load both families.

        Args:
            base_dir: Directory containing strategy-returns/
        """
        self.base_dir = Path(base_dir)
        self.returns_dir = self.base_dir / RETURNS_DIRNAME
        self._corpus: Dict[str, List[StrategyReturns]] = {}
        self.reload()

    # -------------------------------------------------------------------------
    # Corpus
    # -------------------------------------------------------------------------

    def _family_path(self, family: str) -> Path:
        return self.returns_dir / f"{family}-returns.json"

    def _load_family(self, family: str) -> List[StrategyReturns]:
        """Read one family. Any read or parse error yields an empty family."""
        path = self._family_path(family)
        if not path.exists():
            return []

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError("expected a JSON array")
            return [StrategyReturns.from_dict(item) for item in data]
        except (IOError, OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Could not load {family} returns from {path}: {e}")
            return []

    def reload(self) -> None:
        """Re-read both families from disk."""
        self._corpus = {family.value: self._load_family(family.value) for family in ReturnFamily}
        logger.debug(
            "Return corpus loaded: "
            + ", ".join(f"{k}={len(v)}" for k, v in self._corpus.items())
        )

    def family_series(self, family: Union[ReturnFamily, str]) -> List[StrategyReturns]:
        """Stored strategies of one family, as last loaded."""
        return list(self._corpus.get(_family_key(family), []))

    def store_returns(
        self,
        family: Union[ReturnFamily, str],
        strategy_name: str,
        returns: Sequence[float],
    ) -> StrategyReturns:
        """
        Upsert one strategy's returns into the family corpus on disk.

        The in-memory corpus is not refreshed; call reload() for that.

        Args:
            family: Corpus family (btc or weather)
            strategy_name: Record key within the family
            returns: Return series

        Returns:
            The stored record

        Raises:
            ValueError: If any return is NaN or infinite
        """
        family = _family_key(family)
        values = tuple(float(r) for r in returns)
        if not all(math.isfinite(r) for r in values):
            raise ValueError(f"Non-finite return in {family}/{strategy_name}")
        self.returns_dir.mkdir(parents=True, exist_ok=True)

        existing = self._load_family(family)
        entry = StrategyReturns(
            strategy_name=strategy_name,
            returns=values,
            family=family,
            updated_at=utc_now().isoformat(),
        )

        for i, record in enumerate(existing):
            if record.strategy_name == strategy_name:
                existing[i] = entry
                break
        else:
            existing.append(entry)

        with open(self._family_path(family), "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in existing], f, indent=2)

        logger.info(f"Stored {len(entry.returns)} returns for {family}/{strategy_name}")
        return entry

    # -------------------------------------------------------------------------
    # Analysis
    # -------------------------------------------------------------------------

    def _average_correlation(self, returns: Sequence[float], family: str) -> float:
        correlations = [
            pearson_correlation(returns, s.returns)
            for s in self._corpus.get(family, [])
            if len(s.returns) >= MIN_RETURN_POINTS
        ]
        if not correlations:
            return 0.0
        return sum(correlations) / len(correlations)

    @staticmethod
    def _describe(btc: float, weather: float, is_uncorrelated: bool, score: int) -> str:
        parts = []

        if abs(btc) > HIGH_CORRELATION_THRESHOLD:
            parts.append(f"Highly correlated with BTC strategies ({btc:.2f}).")
        elif abs(btc) > UNCORRELATED_THRESHOLD:
            parts.append(f"Moderately correlated with BTC strategies ({btc:.2f}).")
        else:
            parts.append(f"Uncorrelated with BTC strategies ({btc:.2f}).")

        if abs(weather) > UNCORRELATED_THRESHOLD:
            parts.append(f"Some correlation with weather strategies ({weather:.2f}).")

        if is_uncorrelated:
            parts.append(
                "Strong diversification potential - this strategy could reduce portfolio volatility."
            )
        elif btc > LIMITED_BENEFIT_THRESHOLD:
            parts.append("Limited diversification benefit - returns move with your BTC exposure.")

        parts.append(f"Diversification score: {score}/10.")
        return " ".join(parts)

    def analyze(self, new_returns: Sequence[float]) -> CorrelationResult:
        """
        Score a candidate return series against the corpus.

        Args:
            new_returns: Per-period returns of the claimed strategy

        Returns:
            CorrelationResult (neutral score 5 with fewer than 10 points)
        """
        new_returns = [float(r) for r in new_returns]
        if len(new_returns) < MIN_RETURN_POINTS:
            return CorrelationResult(
                btc_correlation=0.0,
                weather_correlation=0.0,
                is_uncorrelated=True,
                diversification_score=NEUTRAL_DIVERSIFICATION_SCORE,
                analysis=INSUFFICIENT_DATA_ANALYSIS,
            )

        btc = self._average_correlation(new_returns, ReturnFamily.BTC.value)
        weather = self._average_correlation(new_returns, ReturnFamily.WEATHER.value)

        is_uncorrelated = abs(btc) < UNCORRELATED_THRESHOLD and abs(weather) < UNCORRELATED_THRESHOLD
        mean_abs = (abs(btc) + abs(weather)) / 2
        score = max(0, min(10, _round_half_up((1 - mean_abs) * 10)))

        logger.info(
            f"Correlation analysis: btc={btc:.3f} weather={weather:.3f} score={score}/10"
        )

        return CorrelationResult(
            btc_correlation=round(btc, 3),
            weather_correlation=round(weather, 3),
            is_uncorrelated=is_uncorrelated,
            diversification_score=score,
            analysis=self._describe(btc, weather, is_uncorrelated, score),
        )
