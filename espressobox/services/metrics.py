"""Derived brewing metrics.

Pure functions over plain values or entity snapshots: anything exposing the
attribute names used below works, whether a stored document or an export
record. Nothing in this module touches storage.

Thresholds come from a ``MetricsConfig`` passed by the caller; the defaults
reproduce the classic espresso windows (ratio 1:1.5 to 1:3, 20 to 35 seconds).
"""

import math
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from espressobox.config.schema import MetricsConfig

DEFAULT_METRICS = MetricsConfig()


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# Freshness
# =============================================================================


class FreshnessLevel(str, Enum):
    """Ordinal freshness of a roast, freshest first."""

    VERY_FRESH = "Very Fresh"
    FRESH = "Fresh"
    GOOD = "Good"
    AGING = "Aging"
    STALE = "Stale"

    @property
    def color_band(self) -> str:
        return FRESHNESS_COLOR_BANDS[self]


FRESHNESS_COLOR_BANDS = {
    FreshnessLevel.VERY_FRESH: "success",
    FreshnessLevel.FRESH: "success",
    FreshnessLevel.GOOD: "accent",
    FreshnessLevel.AGING: "warning",
    FreshnessLevel.STALE: "error",
}


def days_from_roast(roast_date: datetime, now: datetime | None = None) -> int:
    """Whole days elapsed since the roast date, floored."""
    now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
    elapsed = now - ensure_utc(roast_date)
    return math.floor(elapsed / timedelta(days=1))


def freshness_level(days: int, config: MetricsConfig = DEFAULT_METRICS) -> FreshnessLevel:
    """Map days since roast onto the five freshness levels."""
    very_fresh, fresh, good, aging = config.freshness_breakpoints
    if days <= very_fresh:
        return FreshnessLevel.VERY_FRESH
    if days <= fresh:
        return FreshnessLevel.FRESH
    if days <= good:
        return FreshnessLevel.GOOD
    if days <= aging:
        return FreshnessLevel.AGING
    return FreshnessLevel.STALE


def is_stale(days: int, config: MetricsConfig = DEFAULT_METRICS) -> bool:
    return days > config.stale_after_days


# =============================================================================
# Stock
# =============================================================================


class StockStatus(BaseModel):
    """Inventory state of one bag of beans."""

    model_config = ConfigDict(frozen=True)

    weight: float
    total_used: float
    remaining: float
    usage_percentage: float
    is_low_stock: bool
    is_finished: bool


def stock_status(
    weight: float,
    doses: Iterable[float],
    config: MetricsConfig = DEFAULT_METRICS,
) -> StockStatus:
    """Compute remaining stock from the bag weight and the doses brewed from it."""
    total_used = sum(doses)
    remaining = max(0.0, weight - total_used)
    if weight > 0:
        usage = min(100.0, 100.0 * total_used / weight)
    else:
        usage = 0.0
    return StockStatus(
        weight=weight,
        total_used=total_used,
        remaining=remaining,
        usage_percentage=usage,
        is_low_stock=0 < remaining < config.low_stock_grams,
        is_finished=remaining <= 0,
    )


# =============================================================================
# Ratio, extraction and quality
# =============================================================================


class Extraction(str, Enum):
    UNDER = "Under-extracted"
    OPTIMAL = "Optimal"
    OVER = "Over-extracted"


class QualityAssessment(str, Enum):
    ON_TARGET = "On Target"
    NEEDS_ADJUSTMENT = "Needs Adjustment"
    CHECK_RATIO = "Check Ratio"
    CHECK_TIME = "Check Time"


def brew_ratio(dose_in: float, yield_out: float) -> float:
    """Yield divided by dose; 0 when there is no dose."""
    if dose_in <= 0:
        return 0.0
    return yield_out / dose_in


def ratio_in_range(ratio: float, config: MetricsConfig = DEFAULT_METRICS) -> bool:
    return config.ratio_min <= ratio <= config.ratio_max


def time_in_range(brew_time: float, config: MetricsConfig = DEFAULT_METRICS) -> bool:
    return config.brew_time_min <= brew_time <= config.brew_time_max


def classify_extraction(brew_time: float, config: MetricsConfig = DEFAULT_METRICS) -> Extraction:
    if brew_time < config.brew_time_min:
        return Extraction.UNDER
    if brew_time > config.brew_time_max:
        return Extraction.OVER
    return Extraction.OPTIMAL


def assess_quality(
    ratio: float,
    brew_time: float,
    config: MetricsConfig = DEFAULT_METRICS,
) -> QualityAssessment:
    ratio_ok = ratio_in_range(ratio, config)
    time_ok = time_in_range(brew_time, config)
    if ratio_ok and time_ok:
        return QualityAssessment.ON_TARGET
    if not ratio_ok and not time_ok:
        return QualityAssessment.NEEDS_ADJUSTMENT
    if not ratio_ok:
        return QualityAssessment.CHECK_RATIO
    return QualityAssessment.CHECK_TIME


def format_ratio(ratio: float) -> str:
    return f"1:{ratio:.1f}"


def format_brew_time(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    if minutes > 0:
        return f"{minutes}:{secs:02d}"
    return f"{secs}s"


# =============================================================================
# Taste
# =============================================================================


class TasteProfile(BaseModel):
    """Five-axis subjective rating recorded per session, each on a 1-5 scale."""

    model_config = ConfigDict(frozen=True)

    acidity: int = Field(default=3, ge=1, le=5)
    sweetness: int = Field(default=3, ge=1, le=5)
    bitterness: int = Field(default=3, ge=1, le=5)
    body_weight: int = Field(default=3, ge=1, le=5)
    aftertaste: int = Field(default=3, ge=1, le=5)

    @classmethod
    def of(cls, session: Any) -> "TasteProfile":
        """Build a profile from anything carrying the five score attributes."""
        return cls(
            acidity=session.acidity,
            sweetness=session.sweetness,
            bitterness=session.bitterness,
            body_weight=session.body_weight,
            aftertaste=session.aftertaste,
        )

    @property
    def average(self) -> float:
        total = self.acidity + self.sweetness + self.bitterness + self.body_weight + self.aftertaste
        return total / 5.0


class TasteBalance(str, Enum):
    BALANCED = "Balanced"
    BRIGHT = "Bright/Acidic"
    BITTER = "Bitter/Heavy"


def taste_skew(profile: TasteProfile) -> int:
    """Acidity minus bitterness: positive leans bright, negative leans bitter."""
    return profile.acidity - profile.bitterness


def taste_balance(profile: TasteProfile, config: MetricsConfig = DEFAULT_METRICS) -> TasteBalance:
    skew = taste_skew(profile)
    if abs(skew) <= config.balance_tolerance:
        return TasteBalance.BALANCED
    if skew > 0:
        return TasteBalance.BRIGHT
    return TasteBalance.BITTER


def overall_taste_label(profile: TasteProfile) -> str:
    """Grade the average of all five scores."""
    average = profile.average
    if average >= 4.0:
        return "Excellent"
    if average >= 3.5:
        return "Good"
    if average >= 2.5:
        return "Fair"
    return "Needs Work"


# =============================================================================
# Summaries
# =============================================================================


class BeanSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    days_from_roast: int
    freshness: FreshnessLevel
    is_stale: bool
    stock: StockStatus
    session_count: int


def summarize_bean(
    bean: Any,
    sessions: Iterable[Any],
    now: datetime | None = None,
    config: MetricsConfig = DEFAULT_METRICS,
) -> BeanSummary:
    """Freshness and stock for a bean, given the sessions brewed from it."""
    linked = [s for s in sessions if s.bean_id == bean.id]
    days = days_from_roast(bean.roast_date, now)
    return BeanSummary(
        days_from_roast=days,
        freshness=freshness_level(days, config),
        is_stale=is_stale(days, config),
        stock=stock_status(bean.weight, (s.dose_in for s in linked), config),
        session_count=len(linked),
    )


class SessionSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    brew_ratio: float
    extraction: Extraction
    quality: QualityAssessment
    balance: TasteBalance
    taste_label: str
    recommendations: list[str]


def summarize_session(
    session: Any,
    config: MetricsConfig = DEFAULT_METRICS,
    profile: Any | None = None,
) -> SessionSummary:
    """Derived figures and advice for one session.

    A brew method profile, when given, supplies the ratio and time windows
    used for the advice.
    """
    from espressobox.services.recommendations import Recommendations

    ratio = brew_ratio(session.dose_in, session.yield_out)
    taste = TasteProfile.of(session)
    return SessionSummary(
        brew_ratio=ratio,
        extraction=classify_extraction(session.brew_time, config),
        quality=assess_quality(ratio, session.brew_time, config),
        balance=taste_balance(taste, config),
        taste_label=overall_taste_label(taste),
        recommendations=list(Recommendations.for_session(session, profile, config)),
    )


class HistoryStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_sessions: int
    average_brew_time: float
    average_ratio: float
    sessions_this_week: int


def history_stats(sessions: Iterable[Any], now: datetime | None = None) -> HistoryStats:
    """Aggregate figures over a brewing history."""
    sessions = list(sessions)
    now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
    week_ago = now - timedelta(days=7)

    average_time = 0.0
    if sessions:
        average_time = sum(s.brew_time for s in sessions) / len(sessions)

    dosed = [s for s in sessions if s.dose_in > 0]
    average_ratio = 0.0
    if dosed:
        average_ratio = sum(brew_ratio(s.dose_in, s.yield_out) for s in dosed) / len(dosed)

    return HistoryStats(
        total_sessions=len(sessions),
        average_brew_time=average_time,
        average_ratio=average_ratio,
        sessions_this_week=sum(1 for s in sessions if ensure_utc(s.start_time) >= week_ago),
    )
