r"""
qflag typed flags.

Overview
- FlagKind: the closed set of value kinds a flag can carry. Every concrete flag
  class declares exactly one kind; code that inspects a flag's type (completion
  value-kinds, enum checks, help) matches on the kind, never on isinstance.
- TypedFlag: the binding contract consumed by the registry and the parser.
  • init(long, short, default, usage): one-time identity/default setup.
  • set(raw): parse + check + validate, then swap the value in (all or nothing).
  • get(): current value, or the default while nothing was set.
  • default, is_set, reset(), bind_env(name), validate_with(validator).
- Concrete kinds: string, integers (int/int64/uint16/uint32/uint64), float,
  bool, enum, duration, time, size, path, ip4/ip6, url, map, and slices of
  strings/ints/int64s.

Value grammars
- integers: base-10, range-checked per kind.
- bool: 1 t T TRUE true True 0 f F FALSE false False.
- duration: "[-+]?(<number><unit>)+" with units ns, us, µs, ms, s, m, h (or "0").
- time: ISO-8601 first, then TIME_FORMATS in order.
- size: "0" or "<number><unit>", units B/KB..PB (1000), KiB..PiB and K..P (1024).
- slices: split on the first of , ; | : that occurs, items trimmed, empties skipped.
- map: entries split on , or ; and each entry on its first '=' or ':'.

Thread-safety
- Every flag guards its value with its own lock; reads always return copies of
  container values so callers never alias the stored state.

Quick example:
    >>> port = IntFlag("port", "p", 8080, "listen port").bind_env("PORT")
    >>> port.set("9090")
    >>> port.get()
    9090
"""
import functools
import ipaddress
import logging as logmod
import operator
import os
import re
import threading
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from urllib.parse import urlsplit

from .faults import SetupInvariantError, InvalidNameError, FlagValueError, EnumValidationError
from .utils import *
from .utils import _immortalize

logging = logmod.getLogger(__name__)


class FlagKind(Enum):
    """
    closed set of flag value kinds (the tag of the flag sum type).
    """
    STRING       = "string"
    INT          = "int"
    INT64        = "int64"
    UINT16       = "uint16"
    UINT32       = "uint32"
    UINT64       = "uint64"
    FLOAT64      = "float64"
    BOOL         = "bool"
    ENUM         = "enum"
    DURATION     = "duration"
    TIME         = "time"
    MAP          = "map"
    STRING_SLICE = "string-slice"
    INT_SLICE    = "int-slice"
    INT64_SLICE  = "int64-slice"
    SIZE         = "size"
    PATH         = "path"
    IP4          = "ip4"
    IP6          = "ip6"
    URL          = "url"


SLICE_SEPARATORS = (",", ";", "|", ":")
MAP_SEPARATORS = (",", ";")
KEY_SEPARATORS = ("=", ":")

TIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%H:%M:%S",
    "%a, %d %b %Y %H:%M:%S %Z",
    "%a, %d %b %Y %H:%M:%S %z",
    "%d %b %y %H:%M %Z",
    "%d %b %y %H:%M %z",
    "%m/%d/%Y %H:%M:%S",
    "%Y%m%d%H%M%S",
    "%I:%M%p",
    "%b %d %H:%M:%S",
)

_TRUTHY = frozenset(("1", "t", "T", "TRUE", "true", "True"))
_FALSY = frozenset(("0", "f", "F", "FALSE", "false", "False"))

# microseconds per unit
_DURATION_UNITS = {
    "ns": 0.001,
    "us": 1,
    "µs": 1,
    "μs": 1,
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60_000_000,
    "h": 3_600_000_000,
}
_DURATION_COMPONENT = r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)"

_SIZE_UNITS = {
    "b": 1,
    "byte": 1,
    "bytes": 1,
    "kb": 1000,
    "mb": 1000 ** 2,
    "gb": 1000 ** 3,
    "tb": 1000 ** 4,
    "pb": 1000 ** 5,
    "kib": 1024,
    "mib": 1024 ** 2,
    "gib": 1024 ** 3,
    "tib": 1024 ** 4,
    "pib": 1024 ** 5,
    "k": 1024,
    "m": 1024 ** 2,
    "g": 1024 ** 3,
    "t": 1024 ** 4,
    "p": 1024 ** 5,
}

# characters a flag name can never contain
ILLEGAL_CHARACTERS = frozenset(" !@#$%^&*(){}[]|\\;:'\"<>,.?/")


class FlagType(type):
    """
    metaclass giving every flag class a typename, mirrored properties and
    stable __repr__/__rich_repr__.

    conventions
    - __typename__ is derived from the class name ("IntFlag" -> "int-flag").
    - names listed in __introspectable__ become read-only mirror() properties.
    - __displayable__ (if set) narrows what __rich_repr__ shows.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z][a-z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _check_name(cls, which, name):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} {which!r} name must be a string")
    if illegal := sorted(set(name) & ILLEGAL_CHARACTERS):
        raise InvalidNameError(
            f"{cls.__typename__} {which} name {name!r} contains illegal characters {''.join(illegal)!r}",
            name=name,
        )
    return name


class TypedFlag(metaclass=FlagType):
    """
    base of every flag kind.

    lifecycle
    - construct with names to initialize immediately, or construct bare and
      call init() exactly once later; a second init() is a setup error.
    - set() is the only mutation path for the value; on failure the previous
      value is left untouched and FlagValueError is raised.

    subclass hooks
    - __kind__: the FlagKind tag.
    - __zero__: default used when init() receives no default.
    - _coerce(default): normalize/type-check a programmatic default.
    - parse(raw): turn a raw string into a typed value (raise ValueError).
    - _check(value): kind-level invariants (ranges, membership).
    - _display(value): short text used by help output.
    """
    __kind__ = Unset
    __zero__ = None
    __introspectable__ = ("long", "short", "usage", "default")
    __displayable__ = ("long", "short", "default", "env")

    def __init__(self, long=Unset, short=Unset, /, default=Unset, usage=Unset, *, env=Unset, validator=Unset):
        self._lock = threading.RLock()
        self._initialized = False
        self._long = ""
        self._short = ""
        self._usage = ""
        self._default = None
        self._value = Unset
        self._env = ""
        self._validator = None
        if long is not Unset or short is not Unset:
            self.init(coalesce(long, ""), coalesce(short, ""), default, usage)
        if env is not Unset:
            self.bind_env(env)
        if validator is not Unset:
            self.validate_with(validator)

    @property
    def kind(self):
        return type(self).__kind__

    @property
    def name(self):
        """long name when present, short name otherwise."""
        return self._long or self._short

    @property
    def requires_value(self):
        return True

    @property
    def initialized(self):
        return self._initialized

    @property
    def is_set(self):
        with self._lock:
            return self._value is not Unset

    @property
    def env(self):
        with self._lock:
            return self._env

    def init(self, long, short, /, default=Unset, usage=Unset):
        """
        bind identity, default and usage; allowed once per flag.

        raises
        - SetupInvariantError: already initialized.
        - InvalidNameError: both names empty or a name with illegal characters.
        - TypeError / FlagValueError: default of the wrong type or failing the kind check.
        """
        cls = type(self)
        with self._lock:
            if self._initialized:
                raise SetupInvariantError(f"{cls.__typename__} {self.name!r} is already initialized", flag=self)
            long = _check_name(cls, "long", long).strip()
            short = _check_name(cls, "short", short).strip()
            if not long and not short:
                raise InvalidNameError(f"{cls.__typename__} requires a long or a short name")
            if not isinstance(usage := coalesce(usage, ""), str):
                raise TypeError(f"{cls.__typename__} 'usage' must be a string")
            default = self._coerce(coalesce(default, self._zero()))
            try:
                if default is not None:
                    self._check(default)
            except ValueError as error:
                raise FlagValueError(
                    f"invalid default {default!r} for flag {long or short!r}: {error}", flag=self, value=default
                ) from error
            self._long, self._short, self._usage, self._default = long, short, usage.strip(), default
            self._initialized = True
        logging.debug("initialized %s %r", cls.__typename__, self.name)
        return self

    def _ensure(self):
        if not self._initialized:
            raise SetupInvariantError(f"{type(self).__typename__} is not initialized", flag=self)

    def _zero(self):
        return _immortalize(type(self).__zero__)

    def _coerce(self, default):
        return default

    def _check(self, value):
        pass

    def _display(self, value):
        return "" if value is None else str(value)

    def parse(self, raw, /):
        raise NotImplementedError(f"{type(self).__typename__} cannot parse values")

    def get(self):
        """current value, or the default while nothing was set."""
        with self._lock:
            self._ensure()
            return _immortalize(coalesce(self._value, self._default))

    def set(self, raw, /):
        """
        parse and validate raw, then replace the current value.

        raises
        - FlagValueError (EnumValidationError for enum membership) when the
          raw text does not parse or fails a check; the value is unchanged.
        """
        if not isinstance(raw, str):
            raise TypeError(f"{type(self).__typename__} set() argument must be a string")
        with self._lock:
            self._ensure()
            try:
                value = self.parse(raw)
                self._check(value)
                if self._validator is not None:
                    self._validator(value)
            except FlagValueError:
                raise
            except (ValueError, TypeError, OverflowError) as error:
                raise FlagValueError(
                    f"invalid value {raw!r} for flag {self.name!r}: {error}", flag=self, value=raw
                ) from error
            self._value = value

    def reset(self):
        """forget any value set so far; get() returns the default again."""
        with self._lock:
            self._value = Unset

    def bind_env(self, name, /):
        """bind an environment variable read as a fallback below the command line."""
        if not isinstance(name, str):
            raise TypeError(f"{type(self).__typename__} bind_env() argument must be a string")
        if not (name := name.strip()):
            raise ValueError(f"{type(self).__typename__} environment variable name cannot be empty")
        with self._lock:
            self._env = name
        return self

    def validate_with(self, validator, /):
        """attach a callable run on every parsed value; it raises ValueError to reject."""
        if not callable(validator):
            raise TypeError(f"{type(self).__typename__} validator must be callable")
        with self._lock:
            self._validator = validator
        return self

    def display(self):
        """text form of the default, as help shows it."""
        return self._display(self._default)


class StringFlag(TypedFlag):
    __kind__ = FlagKind.STRING
    __zero__ = ""

    def _coerce(self, default):
        if not isinstance(default, str):
            raise TypeError(f"{type(self).__typename__} default must be a string")
        return default

    def parse(self, raw, /):
        return raw


class _IntegerFlag(TypedFlag):
    __zero__ = 0
    __bounds__ = (-(2 ** 63), 2 ** 63 - 1)

    def _coerce(self, default):
        if not isinstance(default, int) or isinstance(default, bool):
            raise TypeError(f"{type(self).__typename__} default must be an integer")
        return default

    def _check(self, value):
        lower, upper = type(self).__bounds__
        if not lower <= value <= upper:
            raise ValueError(f"value {value} out of range [{lower}, {upper}]")

    def parse(self, raw, /):
        return int(raw.strip(), 10)


class IntFlag(_IntegerFlag):
    __kind__ = FlagKind.INT


class Int64Flag(_IntegerFlag):
    __kind__ = FlagKind.INT64


class Uint16Flag(_IntegerFlag):
    __kind__ = FlagKind.UINT16
    __bounds__ = (0, 2 ** 16 - 1)


class Uint32Flag(_IntegerFlag):
    __kind__ = FlagKind.UINT32
    __bounds__ = (0, 2 ** 32 - 1)


class Uint64Flag(_IntegerFlag):
    __kind__ = FlagKind.UINT64
    __bounds__ = (0, 2 ** 64 - 1)


class FloatFlag(TypedFlag):
    __kind__ = FlagKind.FLOAT64
    __zero__ = 0.0

    def _coerce(self, default):
        if not isinstance(default, int | float) or isinstance(default, bool):
            raise TypeError(f"{type(self).__typename__} default must be a number")
        return float(default)

    def parse(self, raw, /):
        return float(raw.strip())


class BoolFlag(TypedFlag):
    """presence flag: a bare --name sets it to true, --name=false resets it."""
    __kind__ = FlagKind.BOOL
    __zero__ = False

    @property
    def requires_value(self):
        return False

    def _coerce(self, default):
        if not isinstance(default, bool):
            raise TypeError(f"{type(self).__typename__} default must be a boolean")
        return default

    def _display(self, value):
        return "true" if value else "false"

    def parse(self, raw, /):
        if raw in _TRUTHY:
            return True
        if raw in _FALSY:
            return False
        raise ValueError("expected one of 1, t, true, 0, f, false")


class EnumFlag(TypedFlag):
    """
    string flag restricted to a fixed, case-sensitive option set.

    - options must be non-empty, unique strings.
    - an omitted default resolves to the first option.
    - is_check(value) raises EnumValidationError for anything outside the set.
    """
    __kind__ = FlagKind.ENUM
    __introspectable__ = ("options",)
    __displayable__ = ("long", "short", "default", "options", "env")

    def __init__(self, long=Unset, short=Unset, /, default=Unset, usage=Unset, *, options=(), env=Unset, validator=Unset):
        if isinstance(options, str):
            raise TypeError(f"{type(self).__typename__} 'options' must be an iterable of strings")
        options = tuple(options)
        if not options:
            raise SetupInvariantError(f"{type(self).__typename__} requires at least one option")
        for option in options:
            if not isinstance(option, str):
                raise TypeError(f"{type(self).__typename__} 'options' must be an iterable of strings")
            if not option.strip():
                raise ValueError(f"{type(self).__typename__} 'options' cannot contain empty strings")
        if len(set(options)) != len(options):
            raise ValueError(f"{type(self).__typename__} 'options' cannot contain duplicates")
        self._options = options
        super().__init__(long, short, default, usage, env=env, validator=validator)

    def _zero(self):
        return self._options[0]

    def _coerce(self, default):
        if not isinstance(default, str):
            raise TypeError(f"{type(self).__typename__} default must be a string")
        return default

    def _check(self, value):
        self.is_check(value)

    def is_check(self, value, /):
        """raise EnumValidationError unless value is one of the options."""
        if value not in self._options:
            raise EnumValidationError(
                f"invalid enum value {value!r}, options are [{', '.join(self._options)}]",
                flag=self,
                value=value,
            )

    def parse(self, raw, /):
        self.is_check(raw)
        return raw


def _parse_duration(raw):
    text = raw.strip()
    if text in ("0", "+0", "-0"):
        return timedelta(0)
    if not (match := re.fullmatch(rf"([-+]?)((?:{_DURATION_COMPONENT})+)", text)):
        raise ValueError(f"invalid duration {raw!r}")
    total = sum(float(number) * _DURATION_UNITS[unit] for number, unit in re.findall(_DURATION_COMPONENT, match[2]))
    return timedelta(microseconds=-total if match[1] == "-" else total)


class DurationFlag(TypedFlag):
    __kind__ = FlagKind.DURATION
    __zero__ = timedelta(0)

    def _coerce(self, default):
        if isinstance(default, str):
            return _parse_duration(default)
        if not isinstance(default, timedelta):
            raise TypeError(f"{type(self).__typename__} default must be a timedelta")
        return default

    def parse(self, raw, /):
        return _parse_duration(raw)


class TimeFlag(TypedFlag):
    """
    datetime flag; accepts ISO-8601 and then every layout in `formats`
    (TIME_FORMATS unless overridden).
    """
    __kind__ = FlagKind.TIME

    def __init__(self, long=Unset, short=Unset, /, default=Unset, usage=Unset, *, formats=TIME_FORMATS, env=Unset, validator=Unset):
        if isinstance(formats, str):
            formats = (formats,)
        self._formats = tuple(formats)
        super().__init__(long, short, default, usage, env=env, validator=validator)

    def _coerce(self, default):
        if isinstance(default, str):
            return self.parse(default)
        if default is not None and not isinstance(default, datetime):
            raise TypeError(f"{type(self).__typename__} default must be a datetime")
        return default

    def _display(self, value):
        return "" if value is None else value.isoformat()

    def parse(self, raw, /):
        text = raw.strip()
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            pass
        for format in self._formats:
            try:
                return datetime.strptime(text, format)
            except ValueError:
                continue
        raise ValueError(f"unrecognized time {raw!r}")


class SizeFlag(TypedFlag):
    """byte-size flag; the value is an int number of bytes."""
    __kind__ = FlagKind.SIZE
    __zero__ = 0

    def _coerce(self, default):
        if isinstance(default, str):
            return self.parse(default)
        if not isinstance(default, int) or isinstance(default, bool) or default < 0:
            raise TypeError(f"{type(self).__typename__} default must be a non-negative integer")
        return default

    def _display(self, value):
        for unit in ("PB", "TB", "GB", "MB", "KB"):
            if value >= (size := _SIZE_UNITS[unit.lower()]) and not value % size:
                return f"{value // size}{unit}"
        return f"{value}B"

    def parse(self, raw, /):
        text = raw.strip()
        if text == "0":
            return 0
        if not (match := re.fullmatch(r"(\d+(?:\.\d+)?)\s*([A-Za-z]+)", text)):
            if re.fullmatch(r"[-+]?\d+(?:\.\d+)?", text):
                raise ValueError("size value must include a unit (e.g., 1GB, 512MB, 1024KB) or be '0'")
            raise ValueError("invalid size format, expected something like '1GB', '512MB', '1.5GiB'")
        try:
            multiplier = _SIZE_UNITS[match[2].lower()]
        except KeyError:
            raise ValueError(
                f"unrecognized unit {match[2]!r}, supported units: B, KB..PB, KiB..PiB, K..P"
            ) from None
        return int(round(float(match[1]) * multiplier))


class PathFlag(TypedFlag):
    """filesystem path flag; must_exist rejects paths that are not on disk."""
    __kind__ = FlagKind.PATH

    def __init__(self, long=Unset, short=Unset, /, default=Unset, usage=Unset, *, must_exist=False, env=Unset, validator=Unset):
        self._must_exist = bool(must_exist)
        super().__init__(long, short, default, usage, env=env, validator=validator)

    def _coerce(self, default):
        if default is None:
            return None
        if not isinstance(default, str | os.PathLike):
            raise TypeError(f"{type(self).__typename__} default must be a path")
        return Path(default)

    def _check(self, value):
        if self._must_exist and not value.exists():
            raise ValueError(f"path {str(value)!r} does not exist")

    def parse(self, raw, /):
        if not (text := raw.strip()):
            raise ValueError("path cannot be empty")
        return Path(os.path.normpath(text))


class _AddressFlag(TypedFlag):
    __factory__ = ipaddress.ip_address

    def _coerce(self, default):
        if isinstance(default, str):
            return self.parse(default)
        return default

    def parse(self, raw, /):
        return type(self).__factory__(raw.strip())


class IP4Flag(_AddressFlag):
    __kind__ = FlagKind.IP4
    __factory__ = ipaddress.IPv4Address


class IP6Flag(_AddressFlag):
    __kind__ = FlagKind.IP6
    __factory__ = ipaddress.IPv6Address


class URLFlag(TypedFlag):
    """url flag; the value stays a string but must carry a scheme and a host."""
    __kind__ = FlagKind.URL
    __zero__ = ""

    def _coerce(self, default):
        if not isinstance(default, str):
            raise TypeError(f"{type(self).__typename__} default must be a string")
        return default

    def _check(self, value):
        if value:
            parts = urlsplit(value)
            if not parts.scheme or not parts.netloc:
                raise ValueError("url must include a scheme and a host")

    def parse(self, raw, /):
        if not (text := raw.strip()):
            raise ValueError("url cannot be empty")
        return text


class MapFlag(TypedFlag):
    """string-to-string map; every assignment replaces the whole map."""
    __kind__ = FlagKind.MAP
    __zero__ = {}

    def _coerce(self, default):
        if not isinstance(default, dict) or not all(isinstance(x, str) for x in (*default.keys(), *default.values())):
            raise TypeError(f"{type(self).__typename__} default must be a mapping of strings")
        return dict(default)

    def _display(self, value):
        return ",".join(f"{key}={item}" for key, item in value.items())

    def parse(self, raw, /):
        if not raw.strip():
            raise ValueError("map value cannot be empty")
        mapping = {}
        for entry in splitany(raw, MAP_SEPARATORS):
            positions = [position for position in map(entry.find, KEY_SEPARATORS) if position >= 0]
            if not positions:
                raise ValueError(f"invalid key-value pair {entry!r}")
            key, value = entry[:min(positions)].strip(), entry[min(positions) + 1:].strip()
            if not key:
                raise ValueError(f"empty key in key-value pair {entry!r}")
            if not value:
                raise ValueError(f"empty value in key-value pair {entry!r}")
            mapping[key] = value
        return mapping


class _SliceFlag(TypedFlag):
    __zero__ = []

    def _item(self, raw):
        return raw

    def _coerce(self, default):
        if isinstance(default, str):
            raise TypeError(f"{type(self).__typename__} default must be an iterable of items")
        items = list(default)
        for item in items:
            self._check_item(item)
        return items

    def _check_item(self, item):
        if not isinstance(item, str):
            raise TypeError(f"{type(self).__typename__} items must be strings")

    def _display(self, value):
        return ",".join(map(str, value))

    def parse(self, raw, /):
        if not (items := splitany(raw, SLICE_SEPARATORS)):
            raise ValueError("slice cannot be empty")
        return [self._item(item) for item in items]


class StringSliceFlag(_SliceFlag):
    __kind__ = FlagKind.STRING_SLICE


class IntSliceFlag(_SliceFlag):
    __kind__ = FlagKind.INT_SLICE
    __bounds__ = (-(2 ** 63), 2 ** 63 - 1)

    def _check_item(self, item):
        if not isinstance(item, int) or isinstance(item, bool):
            raise TypeError(f"{type(self).__typename__} items must be integers")

    def _check(self, value):
        lower, upper = type(self).__bounds__
        for item in value:
            if not lower <= item <= upper:
                raise ValueError(f"item {item} out of range [{lower}, {upper}]")

    def _item(self, raw):
        return int(raw, 10)


class Int64SliceFlag(IntSliceFlag):
    __kind__ = FlagKind.INT64_SLICE


__all__ = (
    "FlagKind",
    "TypedFlag",
    "StringFlag",
    "IntFlag",
    "Int64Flag",
    "Uint16Flag",
    "Uint32Flag",
    "Uint64Flag",
    "FloatFlag",
    "BoolFlag",
    "EnumFlag",
    "DurationFlag",
    "TimeFlag",
    "SizeFlag",
    "PathFlag",
    "IP4Flag",
    "IP6Flag",
    "URLFlag",
    "MapFlag",
    "StringSliceFlag",
    "IntSliceFlag",
    "Int64SliceFlag",
    "SLICE_SEPARATORS",
    "TIME_FORMATS",
)

# Remove the internal metaclass from the module namespace; not part of the public API.
del FlagType
