import copy
import dataclasses
import re
from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Type, TypeVar

from smsvoice import config

DURATION_PART_PATTERN = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ms|h|m|s)")

DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}

M = TypeVar("M", bound="ResourceModel")


class InvalidRequestError(Exception):
    """The configuration of a resource failed validation, no remote call has been made."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


def parse_duration(value: str | int | float) -> float:
    """
    Parses a duration like ``"30m"``, ``"1h30m"`` or ``"90s"`` into seconds.
    Numbers are interpreted as seconds.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value < 0:
            raise ValueError(f"negative duration: {value}")
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"invalid duration: {value!r}")

    text = value.strip()
    if not text:
        raise ValueError("empty duration")

    seconds = 0.0
    position = 0
    for match in DURATION_PART_PATTERN.finditer(text):
        if match.start() != position:
            break
        amount, unit = match.groups()
        seconds += float(amount) * DURATION_UNITS[unit]
        position = match.end()

    if position != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return seconds


@dataclass
class Timeouts:
    """Operation timeouts (in seconds) of a resource, as configured in its ``timeouts`` block."""

    create: float = field(default_factory=lambda: config.DEFAULT_CREATE_TIMEOUT)
    update: float = field(default_factory=lambda: config.DEFAULT_UPDATE_TIMEOUT)
    delete: float = field(default_factory=lambda: config.DEFAULT_DELETE_TIMEOUT)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Timeouts":
        if data is None:
            return cls()
        if isinstance(data, Timeouts):
            return data
        if not isinstance(data, dict):
            raise InvalidRequestError([f"timeouts must be a block, got {type(data).__name__}"])
        unknown = set(data) - {"create", "update", "delete"}
        if unknown:
            raise InvalidRequestError([f"unsupported timeouts: {', '.join(sorted(unknown))}"])
        kwargs = {}
        for name, value in data.items():
            if value is None:
                continue
            try:
                kwargs[name] = parse_duration(value)
            except ValueError as e:
                raise InvalidRequestError([f"timeouts.{name}: {e}"])
        return cls(**kwargs)


@dataclass
class ResourceModel:
    """
    Base class of the property models of a resource type.

    Subclasses are plain dataclasses whose field names are the attribute names of the resource
    schema. Unset optional attributes are ``None`` until ``apply_defaults`` is called.
    """

    DEFAULTS: ClassVar[dict[str, Any]] = {}

    @classmethod
    def from_dict(cls: Type[M], data: Optional[dict]) -> M:
        if data is not None and not isinstance(data, dict):
            raise InvalidRequestError([f"expected an object, got {type(data).__name__}"])
        data = dict(data or {})
        names = {f.name for f in dataclasses.fields(cls) if f.init}
        unknown = set(data) - names
        if unknown:
            raise InvalidRequestError(
                [f"unsupported argument: {name}" for name in sorted(unknown)]
            )
        if "timeouts" in names:
            data["timeouts"] = Timeouts.from_dict(data.get("timeouts"))
        return cls(**data)

    def to_dict(self) -> dict:
        result = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Timeouts):
                value = dataclasses.asdict(value)
            elif isinstance(value, (list, dict)):
                value = copy.deepcopy(value)
            result[f.name] = value
        return result

    def apply_defaults(self: M) -> M:
        for name, default in self.DEFAULTS.items():
            if getattr(self, name) is None:
                setattr(self, name, default)
        return self
