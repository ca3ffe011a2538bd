"""
Flag registry: the name index owned by one command.

Both the long and the short name of a flag resolve to the same flag object;
registration order is kept for help and completion output. A duplicate name
fails the whole registration and leaves the index untouched.
"""
import logging as logmod

from .faults import DuplicateNameError, InvalidNameError
from .flags import TypedFlag
from .utils import ReadWriteLock

logging = logmod.getLogger(__name__)


class FlagRegistry:
    """
    name -> flag index with two namespaces (long names, short names).

    invariants
    - no two registered flags share a long name or a short name.
    - every registered flag appears exactly once in registration order.
    - an empty name never matches a lookup.
    """

    def __init__(self):
        self._lock = ReadWriteLock()
        self._bylong = {}
        self._byshort = {}
        self._flags = []

    def register(self, flag, /):
        """
        index a flag under its long and short names.

        raises
        - TypeError: not a TypedFlag.
        - InvalidNameError: flag was never initialized (no names).
        - DuplicateNameError: either name already registered here.
        """
        if not isinstance(flag, TypedFlag):
            raise TypeError("register() argument must be a flag")
        if not flag.initialized:
            raise InvalidNameError(f"{type(flag).__typename__} must have a long or a short name", flag=flag)
        long, short = flag.long, flag.short
        with self._lock.writing():
            if long and long in self._bylong:
                raise DuplicateNameError(
                    f"long flag {long!r} already exists", name=long, flag=flag, hint="choose a different long name"
                )
            if short and short in self._byshort:
                raise DuplicateNameError(
                    f"short flag {short!r} already exists", name=short, flag=flag, hint="choose a different short name"
                )
            if long:
                self._bylong[long] = flag
            if short:
                self._byshort[short] = flag
            self._flags.append(flag)
        logging.debug("registered flag long=%r short=%r", long, short)
        return flag

    def get(self, name, /, default=None):
        """lookup by long name first, then by short name."""
        if not name:
            return default
        with self._lock.reading():
            return self._bylong.get(name) or self._byshort.get(name) or default

    def get_long(self, name, /, default=None):
        if not name:
            return default
        with self._lock.reading():
            return self._bylong.get(name, default)

    def get_short(self, name, /, default=None):
        if not name:
            return default
        with self._lock.reading():
            return self._byshort.get(name, default)

    def flags(self):
        """every registered flag, in registration order."""
        with self._lock.reading():
            return tuple(self._flags)

    def names(self):
        """every registered name (long and short), sorted."""
        with self._lock.reading():
            return sorted((*self._bylong, *self._byshort))

    @property
    def long_count(self):
        with self._lock.reading():
            return len(self._bylong)

    @property
    def short_count(self):
        with self._lock.reading():
            return len(self._byshort)

    def __contains__(self, name):
        return self.get(name) is not None

    def __iter__(self):
        return iter(self.flags())

    def __len__(self):
        with self._lock.reading():
            return len(self._flags)

    def __repr__(self):
        return "flag-registry(%s)" % ", ".join(repr(flag.name) for flag in self.flags())


__all__ = (
    "FlagRegistry",
)
