"""
qflag utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the flag, registry and command layers.

Overview
- UnsetType / Unset
  • Singleton sentinel for "value not provided", distinct from None.
- coalesce(value, default=None)
  • Replace Unset with a concrete default; None/0/""/[] are preserved.
- @rename("name")
  • Stable __name__/__qualname__ for generated accessors.
- mirror("attr") / guarded("attr")
  • Read-only properties over a private backing field (self._attr); guarded()
    additionally takes the instance's reader lock.
- ReadWriteLock
  • Many readers or one (re-entrant) writer; used by every command node.
- splitany(value, separators)
  • Split on the first separator that occurs in the value.
"""
import threading
from collections.abc import Sequence, Mapping, Set
from contextlib import contextmanager
from typing import final


@final
class UnsetType:
    """sentinel type for "no value given"; falsy, sealed, a single instance."""
    __instance = None

    def __new__(cls):
        if cls.__instance is None:
            cls.__instance = super().__new__(cls)
        return cls.__instance

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")

    def __ror__(self, other, /):
        # str | Unset spells the annotation-style union str | UnsetType
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    __or__ = __ror__

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"


def coalesce(object, default=None, /):
    """
    return object unless it is Unset, in which case return default.

    examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(name, /):
    """decorator setting __name__ and __qualname__ of a generated callable."""
    if not isinstance(name, str):
        raise TypeError("rename() argument must be a string")

    def decorator(function):
        if not callable(function):
            raise TypeError("rename() must decorate a callable")
        function.__name__ = function.__qualname__ = name
        return function

    return decorator


def _immortalize(object):
    """
    copy containers recursively so callers cannot mutate backing state.

    - strings and tuples of scalars are immutable already; tuples are still
      rebuilt so nested lists inside them are copied.
    - mappings become dicts, sets become sets, other sequences become lists.
    """
    if isinstance(object, tuple):
        return tuple(map(_immortalize, object))
    elif isinstance(object, Sequence) and not isinstance(object, str):
        return list(map(_immortalize, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(_immortalize, object.values())))
    elif isinstance(object, Set):
        return set(map(_immortalize, object))
    return object


def mirror(name, /):
    """
    define a read-only property exposing a copy of self._{name}.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _immortalize(getattr(self, "_" + name))

    return property(getter)


def guarded(name, /):
    """
    define a read-only property exposing a copy of self._{name} while holding
    the instance reader lock (self._lock must be a ReadWriteLock).
    """
    if not isinstance(name, str):
        raise TypeError("guarded() argument must be a string")

    @rename(name)
    def getter(self):
        with self._lock.reading():
            return _immortalize(getattr(self, "_" + name))

    return property(getter)


class ReadWriteLock:
    """
    reader/writer lock with a re-entrant writer.

    rules
    - any number of threads may hold the lock for reading at once.
    - a single thread may hold it for writing; while it does, that same thread
      may enter reading() or writing() again without blocking.
    - readers never wait on one another; a writer waits until no reader is left.
    - a waiting writer holds back new readers.
    """

    def __init__(self):
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = None
        self._waiting = 0
        self._depth = 0

    @contextmanager
    def reading(self):
        owner = threading.get_ident()
        with self._condition:
            if self._writer == owner:
                self._depth += 1
                reentrant = True
            else:
                while self._writer is not None or self._waiting:
                    self._condition.wait()
                self._readers += 1
                reentrant = False
        try:
            yield self
        finally:
            with self._condition:
                if reentrant:
                    self._depth -= 1
                else:
                    self._readers -= 1
                    if not self._readers:
                        self._condition.notify_all()

    @contextmanager
    def writing(self):
        owner = threading.get_ident()
        with self._condition:
            if self._writer == owner:
                self._depth += 1
            else:
                self._waiting += 1
                while self._writer is not None or self._readers:
                    self._condition.wait()
                self._waiting -= 1
                self._writer = owner
                self._depth = 1
        try:
            yield self
        finally:
            with self._condition:
                self._depth -= 1
                if not self._depth:
                    self._writer = None
                    self._condition.notify_all()


def splitany(value, separators, /):
    """
    split value on the first separator (in the given priority order) that it
    contains; items are trimmed and empty items dropped.

    examples
    - splitany("a, b,,c", ",;") -> ["a", "b", "c"]
    - splitany("a;b,c", ",;")   -> ["a;b", "c"]
    - splitany("abc", ",;")     -> ["abc"]
    """
    if not isinstance(value, str):
        raise TypeError("splitany() first argument must be a string")
    for separator in separators:
        if separator in value:
            items = value.split(separator)
            break
    else:
        items = [value]
    return [item for item in map(str.strip, items) if item]


Unset = UnsetType()
"""
sentinel for "not provided"; pair with coalesce() to materialize defaults.
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "guarded",
    "splitany",

    # Types
    "UnsetType",
    "ReadWriteLock",

    # Constants
    "Unset",
)
