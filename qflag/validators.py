"""
Value validators attached to flags through TypedFlag.validate_with().

Every validator is a small callable object: it receives the already-parsed
value and raises ValueError (lowercased, one sentence) to reject it. The flag
turns that into a FlagValueError naming itself, so messages here never repeat
the flag name.

    >>> IntFlag("workers", "w", 4).validate_with(IntRange(1, 64))
"""
import re
from datetime import timedelta
from pathlib import Path

from .utils import Unset


class Validator:
    """
    base validator: subclasses implement __call__(value).
    """

    def __repr__(self):
        return "%s(%s)" % (type(self).__name__, ", ".join("%s=%r" % item for item in vars(self).items()))

    def __call__(self, value, /):
        raise NotImplementedError


def _bounds(cls, lower, upper):
    if lower is not Unset and upper is not Unset and lower > upper:
        raise ValueError(f"{cls.__name__}() lower bound cannot exceed upper bound")
    return lower, upper


class StringLength(Validator):
    def __init__(self, min=0, max=Unset):
        self.min, self.max = _bounds(type(self), min, max)

    def __call__(self, value, /):
        if not isinstance(value, str):
            raise ValueError("value is not a string")
        if len(value) < self.min:
            raise ValueError(f"string length must be at least {self.min}")
        if self.max is not Unset and len(value) > self.max:
            raise ValueError(f"string length must be at most {self.max}")


class Regex(Validator):
    def __init__(self, pattern, /, message=Unset):
        self.pattern = re.compile(pattern)
        self.message = message

    def __call__(self, value, /):
        if not isinstance(value, str):
            raise ValueError("value is not a string")
        if not self.pattern.fullmatch(value):
            if self.message is not Unset:
                raise ValueError(self.message)
            raise ValueError(f"value does not match pattern {self.pattern.pattern!r}")


class IntRange(Validator):
    def __init__(self, min=Unset, max=Unset):
        self.min, self.max = _bounds(type(self), min, max)

    def __call__(self, value, /):
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError("value is not an integer")
        if self.min is not Unset and value < self.min:
            raise ValueError(f"value must be at least {self.min}")
        if self.max is not Unset and value > self.max:
            raise ValueError(f"value must be at most {self.max}")


class FloatRange(Validator):
    def __init__(self, min=Unset, max=Unset):
        self.min, self.max = _bounds(type(self), min, max)

    def __call__(self, value, /):
        if not isinstance(value, int | float) or isinstance(value, bool):
            raise ValueError("value is not a number")
        if self.min is not Unset and value < self.min:
            raise ValueError(f"value must be at least {self.min}")
        if self.max is not Unset and value > self.max:
            raise ValueError(f"value must be at most {self.max}")


class SliceLength(Validator):
    def __init__(self, min=0, max=Unset):
        self.min, self.max = _bounds(type(self), min, max)

    def __call__(self, value, /):
        if not isinstance(value, list | tuple):
            raise ValueError("value is not a slice")
        if len(value) < self.min:
            raise ValueError(f"slice length must be at least {self.min}")
        if self.max is not Unset and len(value) > self.max:
            raise ValueError(f"slice length must be at most {self.max}")


class DurationRange(Validator):
    def __init__(self, min=timedelta(0), max=Unset):
        self.min, self.max = _bounds(type(self), min, max)

    def __call__(self, value, /):
        if not isinstance(value, timedelta):
            raise ValueError("value is not a duration")
        if value < self.min:
            raise ValueError(f"duration must be at least {self.min}")
        if self.max is not Unset and value > self.max:
            raise ValueError(f"duration must be at most {self.max}")


class OneOf(Validator):
    def __init__(self, *values):
        if not values:
            raise ValueError("OneOf() requires at least one value")
        self.values = values

    def __call__(self, value, /):
        if value not in self.values:
            raise ValueError(f"value {value!r} is not in allowed values [{', '.join(map(str, self.values))}]")


class PathExists(Validator):
    def __init__(self, directory=False):
        self.directory = bool(directory)

    def __call__(self, value, /):
        path = Path(value)
        if not path.exists():
            raise ValueError(f"path {str(path)!r} does not exist")
        if self.directory and not path.is_dir():
            raise ValueError(f"path {str(path)!r} is not a directory")


__all__ = (
    "Validator",
    "StringLength",
    "Regex",
    "IntRange",
    "FloatRange",
    "SliceLength",
    "DurationRange",
    "OneOf",
    "PathExists",
)
