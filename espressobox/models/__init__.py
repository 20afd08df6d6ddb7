"""MongoDB document models for EspressoBox."""

from espressobox.models.bean import Bean, ProcessMethod, RoastLevel
from espressobox.models.grinder import Grinder
from espressobox.models.machine import Machine
from espressobox.models.brewing_session import BrewingSession
from espressobox.models.brew_method import BUILTIN_PROFILES, BrewMethodProfile, ProfilePreset
from espressobox.models.import_batch import ImportBatch, ImportStatus

__all__ = [
    # Inventory
    "Bean",
    "RoastLevel",
    "ProcessMethod",
    # Equipment
    "Grinder",
    "Machine",
    # Brewing
    "BrewingSession",
    "BrewMethodProfile",
    "ProfilePreset",
    "BUILTIN_PROFILES",
    # Import
    "ImportBatch",
    "ImportStatus",
]
