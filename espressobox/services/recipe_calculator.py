"""Recipe calculator: target yield and water from dose and ratio."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from espressobox.config.schema import BrewPreferences


class BrewMethod(str, Enum):
    """Brew method tags stored on sessions."""

    ESPRESSO = "espresso"
    AEROPRESS = "aeropress"
    FRENCH_PRESS = "frenchPress"
    COLD_BREW = "coldBrew"
    POUR_OVER = "pourOver"
    MOKA = "moka"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def typical_ratio(self) -> tuple[float, float]:
        return _TYPICAL_RATIOS[self]

    @property
    def typical_brew_time(self) -> tuple[float, float]:
        return _TYPICAL_TIMES[self]

    @classmethod
    def from_tag(cls, tag: str) -> "BrewMethod":
        """Resolve a stored tag or a display name such as "French Press"."""
        for method in cls:
            if tag in (method.value, method.display_name) or tag.lower() == method.value.lower():
                return method
        raise ValueError(f"Unknown brew method: {tag!r}")


_DISPLAY_NAMES = {
    BrewMethod.ESPRESSO: "Espresso",
    BrewMethod.AEROPRESS: "Aeropress",
    BrewMethod.FRENCH_PRESS: "French Press",
    BrewMethod.COLD_BREW: "Cold Brew",
    BrewMethod.POUR_OVER: "Pour Over",
    BrewMethod.MOKA: "Moka Pot",
}

_TYPICAL_RATIOS = {
    BrewMethod.ESPRESSO: (1.5, 3.0),
    BrewMethod.AEROPRESS: (12.0, 18.0),
    BrewMethod.FRENCH_PRESS: (15.0, 18.0),
    BrewMethod.COLD_BREW: (4.0, 8.0),
    BrewMethod.POUR_OVER: (15.0, 17.0),
    BrewMethod.MOKA: (7.0, 10.0),
}

_TYPICAL_TIMES = {
    BrewMethod.ESPRESSO: (20.0, 35.0),
    BrewMethod.AEROPRESS: (60.0, 120.0),
    BrewMethod.FRENCH_PRESS: (240.0, 300.0),
    BrewMethod.COLD_BREW: (43200.0, 86400.0),
    BrewMethod.POUR_OVER: (180.0, 240.0),
    BrewMethod.MOKA: (240.0, 360.0),
}

RATIO_PRESETS: list[tuple[str, float]] = [
    ("Ristretto", 1.5),
    ("Normale", 2.0),
    ("Lungo", 2.5),
    ("Custom", 3.0),
]


class CommonRecipe(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    dose: float
    ratio: float
    description: str


_COMMON_RECIPES: dict[BrewMethod, list[CommonRecipe]] = {
    BrewMethod.ESPRESSO: [
        CommonRecipe(name="Ristretto", dose=18, ratio=1.5, description="Short, intense shot"),
        CommonRecipe(name="Normale", dose=18, ratio=2.0, description="Standard espresso"),
        CommonRecipe(name="Lungo", dose=18, ratio=2.5, description="Longer extraction"),
    ],
    BrewMethod.AEROPRESS: [
        CommonRecipe(name="Classic", dose=15, ratio=16.0, description="Standard Aeropress"),
        CommonRecipe(name="Concentrated", dose=18, ratio=12.0, description="Strong brew"),
        CommonRecipe(name="Diluted", dose=12, ratio=18.0, description="Lighter brew"),
    ],
    BrewMethod.FRENCH_PRESS: [
        CommonRecipe(name="Standard", dose=30, ratio=16.0, description="Balanced brew"),
        CommonRecipe(name="Strong", dose=35, ratio=14.0, description="Full-bodied"),
        CommonRecipe(name="Light", dose=25, ratio=18.0, description="Milder flavor"),
    ],
    BrewMethod.COLD_BREW: [
        CommonRecipe(name="Concentrate", dose=100, ratio=5.0, description="Strong concentrate"),
        CommonRecipe(name="Ready to Drink", dose=80, ratio=8.0, description="Pre-diluted"),
        CommonRecipe(name="Extra Strong", dose=120, ratio=4.0, description="Maximum flavor"),
    ],
    BrewMethod.POUR_OVER: [
        CommonRecipe(name="Hario V60", dose=20, ratio=16.0, description="Classic V60"),
        CommonRecipe(name="Stronger", dose=22, ratio=15.0, description="Full-bodied"),
        CommonRecipe(name="Lighter", dose=18, ratio=17.0, description="Bright & clean"),
    ],
    BrewMethod.MOKA: [
        CommonRecipe(name="Classic", dose=20, ratio=8.0, description="Traditional moka"),
        CommonRecipe(name="Strong", dose=22, ratio=7.0, description="Intense flavor"),
        CommonRecipe(name="Light", dose=18, ratio=9.0, description="Mild brew"),
    ],
}

_METHOD_TIPS = {
    BrewMethod.ESPRESSO: (
        "Aim for 25-30 seconds extraction time. "
        "Adjust grind size if too fast (<20s) or too slow (>35s)."
    ),
    BrewMethod.AEROPRESS: (
        "Use medium-fine grind. Experiment with inverted method for more control. "
        "Stir 10 seconds before plunging."
    ),
    BrewMethod.FRENCH_PRESS: (
        "Use coarse grind to prevent over-extraction. "
        "Stir after 4 minutes, let settle 1 minute before plunging."
    ),
    BrewMethod.COLD_BREW: (
        "Use coarse grind. Brew in refrigerator for 12-24 hours. "
        "Dilute concentrate 1:1 with water or milk."
    ),
    BrewMethod.POUR_OVER: (
        "Use medium grind. Bloom for 30-45 seconds with 2x coffee weight in water. "
        "Pour in circles."
    ),
    BrewMethod.MOKA: (
        "Use medium-fine grind. Fill water to valve level. Use medium heat and "
        "remove from heat when coffee starts sputtering."
    ),
}


def common_recipes(method: BrewMethod) -> list[CommonRecipe]:
    return list(_COMMON_RECIPES[method])


def method_tips(method: BrewMethod) -> str:
    return _METHOD_TIPS[method]


def parse_number(text: str | float | int | None, fallback: float = 0.0) -> float:
    """Parse user-entered numeric text, returning ``fallback`` when it is not a number.

    A decimal comma is accepted ("18,5" -> 18.5).
    """
    if text is None:
        return fallback
    if isinstance(text, (int, float)):
        return float(text)
    cleaned = text.strip().replace(",", ".")
    try:
        value = float(cleaned)
    except ValueError:
        return fallback
    if value != value or value in (float("inf"), float("-inf")):
        return fallback
    return value


class RecipeResult(BaseModel):
    """Calculated recipe. Ranges are informational only and never clamp."""

    model_config = ConfigDict(frozen=True)

    dose: float
    ratio: float
    target_yield: float
    water_amount: float
    typical_ratio: tuple[float, float] | None = None
    typical_brew_time: tuple[float, float] | None = None


def calculate_recipe(dose: float, ratio: float, profile: Any | None = None) -> RecipeResult:
    """Target yield and water estimate for a dose and brew ratio.

    ``water_amount`` is target yield minus dose, a rough estimate of the water
    to add for immersion and pour-over brews rather than a volume conversion.
    """
    target_yield = dose * ratio
    typical_ratio = typical_time = None
    if profile is not None:
        typical_ratio = (profile.default_ratio_min, profile.default_ratio_max)
        typical_time = (profile.default_brew_time_min, profile.default_brew_time_max)
    return RecipeResult(
        dose=dose,
        ratio=ratio,
        target_yield=target_yield,
        water_amount=target_yield - dose,
        typical_ratio=typical_ratio,
        typical_brew_time=typical_time,
    )


def calculate_from_text(
    dose_text: str,
    ratio_text: str,
    profile: Any | None = None,
) -> RecipeResult:
    """Calculator entry point for raw text input; unparseable values count as 0."""
    return calculate_recipe(parse_number(dose_text), parse_number(ratio_text), profile)


def default_recipe(preferences: BrewPreferences, profile: Any | None = None) -> RecipeResult:
    """Recipe built from the user's default dose and ratio."""
    return calculate_recipe(preferences.default_dose_in, preferences.default_ratio, profile)


def format_time_range(time_range: tuple[float, float]) -> str:
    lower, upper = time_range
    if upper >= 3600:
        return f"{int(lower / 3600)}-{int(upper / 3600)} hours"
    if upper >= 60:
        return f"{int(lower / 60)}-{int(upper / 60)} min"
    return f"{int(lower)}-{int(upper)} sec"


def format_ratio_range(ratio_range: tuple[float, float]) -> str:
    return f"1:{ratio_range[0]:.1f} - 1:{ratio_range[1]:.1f}"
