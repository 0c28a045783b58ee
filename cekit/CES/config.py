from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional

__all__ = ["RunConfig", "ENCODINGS", "SEARCHES", "SEMANTICS", "POLICIES"]

# accepted spellings -> canonical value
ENCODINGS: Dict[str, str] = {
    "port-link": "port-link",
    "pl": "port-link",
    "fork-join": "fork-join",
    "fj": "fork-join",
}
SEARCHES: Dict[str, str] = {"min": "min", "all": "all"}
SEMANTICS: Dict[str, str] = {"seq": "seq", "par": "par", "max": "max"}
POLICIES: Dict[str, str] = {
    "priority": "priority",
    "random": "random",
    "exhaustive": "exhaustive",
}


def _choice(label: str, value: Any, table: Dict[str, str]) -> str:
    key = str(getattr(value, "value", value)).strip().lower().replace("_", "-")
    try:
        return table[key]
    except KeyError:
        raise ValueError(
            f"{label} must be one of {', '.join(sorted(set(table.values())))} (got {value!r})"
        ) from None


@dataclass(frozen=True)
class RunConfig:
    """
    Settings of one driver invocation, passed explicitly to every stage.

    :param encoding: SAT encoding, ``port-link`` or ``fork-join``.
    :param search: SAT search mode, ``min`` or ``all``.
    :param semantics: Step semantics, ``seq``, ``par`` or ``max``.
    :param max_steps: Step bound per pass.
    :param num_passes: Passes per start marking.
    :param seed: Base seed; pass ``k`` uses ``seed + k``.
    :param policy: Selection policy, ``priority``, ``random`` or ``exhaustive``.
    :param workers: Thread pool size for multi-pass sampling.
    :param timeout: Overall SAT timeout in seconds, or None.
    :param exhaustive: Explore every branch instead of running passes.
    :param verbosity: Console verbosity (0 warnings, 1 info, 2+ debug).
    :raises ValueError: On an unknown choice or an out-of-range number.

    .. code-block:: python

        cfg = RunConfig(semantics="max")
        cfg2 = cfg.with_overrides(seed=7, num_passes=10)
    """

    encoding: str = "port-link"
    search: str = "min"
    semantics: str = "seq"
    max_steps: int = 1000
    num_passes: int = 1
    seed: int = 0
    policy: str = "priority"
    workers: int = 1
    timeout: Optional[float] = None
    exhaustive: bool = False
    verbosity: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "encoding", _choice("encoding", self.encoding, ENCODINGS))
        object.__setattr__(self, "search", _choice("search", self.search, SEARCHES))
        object.__setattr__(self, "semantics", _choice("semantics", self.semantics, SEMANTICS))
        object.__setattr__(self, "policy", _choice("policy", self.policy, POLICIES))
        if int(self.max_steps) < 0:
            raise ValueError("max_steps must be >= 0")
        if int(self.num_passes) < 1:
            raise ValueError("num_passes must be >= 1")
        if int(self.workers) < 1:
            raise ValueError("workers must be >= 1")
        if self.timeout is not None and float(self.timeout) <= 0:
            raise ValueError("timeout must be positive")

    def with_overrides(self, **overrides: Any) -> "RunConfig":
        """Copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
