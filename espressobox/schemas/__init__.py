"""Pydantic schemas for EspressoBox data transfer."""

from espressobox.schemas.export import (
    BeanExport,
    ExportDocument,
    ExportFormat,
    GrinderExport,
    MachineExport,
    SessionExport,
    SessionFlatExport,
)

__all__ = [
    "BeanExport",
    "ExportDocument",
    "ExportFormat",
    "GrinderExport",
    "MachineExport",
    "SessionExport",
    "SessionFlatExport",
]
