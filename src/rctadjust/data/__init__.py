"""Trial data containers and the formula front door."""

from .design import DesignData, PersonTime, TimeGrid, expand_person_time, pooled_design
from .formula import ordinal_design, survival_design

__all__ = [
    "DesignData",
    "TimeGrid",
    "PersonTime",
    "expand_person_time",
    "pooled_design",
    "survival_design",
    "ordinal_design",
]
