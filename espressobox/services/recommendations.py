"""Brewing advice derived from a session's ratio, time and taste scores."""

from collections.abc import Iterator
from typing import Any

from espressobox.config.schema import MetricsConfig
from espressobox.services.metrics import (
    DEFAULT_METRICS,
    TasteProfile,
    brew_ratio,
)

GREAT_SHOT = "Great shot! Current parameters are working well"

RATIO_TOO_LOW = "Very concentrated - consider increasing yield for more balance"
RATIO_TOO_HIGH = "Over-diluted - reduce yield or increase dose"
TIME_TOO_FAST = "Ran fast (under-extracted): grind finer or increase dose"
TIME_TOO_SLOW = "Ran slow (over-extracted): grind coarser or reduce dose"

TOO_BITTER = "Too bitter: Try coarser grind, lower water temp (88-91°C), or shorter brew time"
TOO_ACIDIC = "Too acidic: Try finer grind, higher water temp (93-96°C), or longer brew time"
LACKING_BRIGHTNESS = "Lacking brightness: Increase water temp slightly or use fresher beans"
WEAK_BODY = "Weak body: Increase dose, use finer grind, or higher pressure"
TOO_HEAVY = "Too heavy: Decrease dose or try a coarser grind"
LACKING_SWEETNESS = "Lacking sweetness: Ensure proper extraction (25-30s), check bean freshness"
POOR_FINISH = "Poor finish: Check bean quality, adjust extraction time"
OVER_EXTRACTED = "Over-extracted: Significantly coarsen grind and reduce brew time"
UNDER_EXTRACTED = "Under-extracted: Finer grind and longer brew time needed"


class Recommendations:
    """Lazy, restartable sequence of advice strings for one brew.

    Every iteration re-evaluates the rules from the start, so the same
    instance can be walked any number of times. When no rule fires a single
    affirmative message is produced instead.
    """

    def __init__(
        self,
        ratio: float,
        brew_time: float,
        taste: TasteProfile | None = None,
        ratio_range: tuple[float, float] | None = None,
        time_range: tuple[float, float] | None = None,
        config: MetricsConfig = DEFAULT_METRICS,
    ) -> None:
        self.ratio = ratio
        self.brew_time = brew_time
        self.taste = taste or TasteProfile()
        self.ratio_range = ratio_range or (config.ratio_min, config.ratio_max)
        self.time_range = time_range or (config.brew_time_min, config.brew_time_max)

    @classmethod
    def for_session(
        cls,
        session: Any,
        profile: Any | None = None,
        config: MetricsConfig = DEFAULT_METRICS,
    ) -> "Recommendations":
        """Build recommendations for a session.

        When a brew method profile is given its default ratio and time
        windows replace the ones from the metrics config.
        """
        ratio_range = time_range = None
        if profile is not None:
            ratio_range = (profile.default_ratio_min, profile.default_ratio_max)
            time_range = (profile.default_brew_time_min, profile.default_brew_time_max)
        return cls(
            ratio=brew_ratio(session.dose_in, session.yield_out),
            brew_time=session.brew_time,
            taste=TasteProfile.of(session),
            ratio_range=ratio_range,
            time_range=time_range,
            config=config,
        )

    def __iter__(self) -> Iterator[str]:
        produced = False
        for advice in self._rules():
            produced = True
            yield advice
        if not produced:
            yield GREAT_SHOT

    def _rules(self) -> Iterator[str]:
        ratio_min, ratio_max = self.ratio_range
        time_min, time_max = self.time_range
        taste = self.taste

        if self.ratio < ratio_min:
            yield RATIO_TOO_LOW
        elif self.ratio > ratio_max:
            yield RATIO_TOO_HIGH

        if self.brew_time < time_min:
            yield TIME_TOO_FAST
        elif self.brew_time > time_max:
            yield TIME_TOO_SLOW

        if taste.bitterness >= 4:
            yield TOO_BITTER

        if taste.acidity >= 4:
            yield TOO_ACIDIC
        elif taste.acidity <= 2:
            yield LACKING_BRIGHTNESS

        if taste.body_weight <= 2:
            yield WEAK_BODY
        elif taste.body_weight >= 4:
            yield TOO_HEAVY

        if taste.sweetness <= 2:
            yield LACKING_SWEETNESS

        if taste.aftertaste <= 2:
            yield POOR_FINISH

        if taste.bitterness >= 4 and taste.acidity <= 2:
            yield OVER_EXTRACTED
        elif taste.acidity >= 4 and taste.bitterness <= 2:
            yield UNDER_EXTRACTED

    def is_all_good(self) -> bool:
        return next(iter(self._rules()), None) is None
