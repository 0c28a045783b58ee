from .fuset import Fuset, FusetSummary, Star, summarize_fuset
from .floret import Floret, Fusor, fusors, split_components, split_florets
from .partition import (
    DotClass,
    Grade,
    classify,
    classify_dot,
    partition_frame,
    partition_table,
)

__all__ = [
    "Fuset",
    "FusetSummary",
    "Star",
    "summarize_fuset",
    "Floret",
    "Fusor",
    "fusors",
    "split_components",
    "split_florets",
    "DotClass",
    "Grade",
    "classify",
    "classify_dot",
    "partition_frame",
    "partition_table",
]
