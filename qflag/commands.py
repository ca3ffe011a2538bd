"""
qflag command layer: command trees and the parse state machine.

What this module provides
- Command: one node of a command hierarchy.
  • owns a FlagRegistry, an ordered child list plus a name index over the same
    children (long and short names), and a back-reference to its parent.
  • add_children() validates a whole batch (names, cycles) before mutating.
  • parse()/parse_flags_only() run the one-shot parse state machine.
  • help/version rendering through rich; completion scripts on demand.
- ParseState: UNPARSED -> PARSING -> PARSED.
- invoke(command, prompt): standalone runner; exits 0 on built-in requests,
  renders faults on stderr and exits 1.

Parse algorithm (first call only, later calls replay the outcome)
1. validate internals (before the latch; a failure here does not latch).
2. register built-ins: --help/-h always, --version/-v on a root with a
   version, --completion on a root with completion enabled.
3. load bound environment variables (failures are EnvLoadError).
4. tokenize up to the first non-flag token or "--", resolve every token,
   then assign values (command line beats environment beats default).
5. intercept help, version, completion.
6. re-check enum flags, then mutex/required groups.
7. dispatch the first positional to a matching child with the rest.
Unexpected exceptions in steps 2-7 become PanicRecoveredError.

Quick example:
    >>> app = Command("app", descr="demo")
    >>> serve = app.subcommand("serve")
    >>> port = serve.int("port", "p", 8080, "listen port")
    >>> app.parse(["serve", "-p", "9090"])
    False
    >>> port.get()
    9090
"""
import difflib
import logging as logmod
import os
import re
import shlex
import sys
import threading
import traceback
from collections import defaultdict
from collections.abc import Iterable
from enum import Enum

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.table import Table
from rich.text import Text

from .completion import SHELLS, generate
from .faults import *
from .flags import *
from .flags import ILLEGAL_CHARACTERS
from .registry import FlagRegistry
from .utils import *

logging = logmod.getLogger(__name__)

# deepest parent/child chain the cycle walk accepts before giving up
MAX_TREE_DEPTH = 64


class ParseState(Enum):
    UNPARSED = "unparsed"
    PARSING = "parsing"
    PARSED = "parsed"


class CommandType(type):
    """
    metaclass for Command: typename, reader-locked guarded() properties for
    every name in __introspectable__ and stable __repr__/__rich_repr__.
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
                name: guarded(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return "%s(%s)" % (type(self).__typename__, ", ".join("%s=%r" % item for item in self.__rich_repr__()))
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


_SETTINGS = {
    "descr": str,
    "version": str,
    "usage": str,
    "logo": str,
    "envprefix": str,
    "completion": bool,
    "exit_on_builtins": bool,
    "disable_builtins": bool,
}


def _setting(cls, name, value):
    if name == "run":
        if value is not None and not callable(value):
            raise TypeError(f"{cls.__typename__} 'run' must be callable")
        return value
    if name not in _SETTINGS:
        raise TypeError(f"{cls.__typename__} got an unexpected setting {name!r}")
    if not isinstance(value, _SETTINGS[name]):
        raise TypeError(f"{cls.__typename__} {name!r} must be a {_SETTINGS[name].__name__}")
    match name:
        case "logo":
            return value
        case "envprefix":
            return value.strip().rstrip("_")
        case _ if isinstance(value, str):
            return value.strip()
    return value


def _command_name(cls, which, name):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} {which} name must be a string")
    if illegal := sorted(set(name := name.strip()) & ILLEGAL_CHARACTERS):
        raise InvalidNameError(
            f"{cls.__typename__} {which} name {name!r} contains illegal characters {''.join(illegal)!r}", name=name
        )
    return name


def _example(example):
    if isinstance(example, str) or not isinstance(example, Iterable):
        raise TypeError("example must be a (title, command) pair")
    title, command = example
    if not isinstance(title, str) or not isinstance(command, str):
        raise TypeError("example must be a (title, command) pair of strings")
    return title.strip(), command.strip()


def _tokens(prompt):
    if prompt is Unset:
        return sys.argv[1:]
    if isinstance(prompt, str) or not isinstance(prompt, Iterable):
        raise TypeError("parse() argument must be an iterable of strings")
    tokens = list(prompt)
    for token in tokens:
        if not isinstance(token, str):
            raise TypeError("parse() argument must be an iterable of strings")
    return tokens


def _dashed(name):
    return ("-" if len(name) == 1 else "--") + name


def _reaches(candidate, target):
    """
    true when target is candidate, one of its descendants, or one of its
    ancestors; raises TreeDepthError past MAX_TREE_DEPTH.
    """
    if candidate is target:
        return True

    depth, node = 0, candidate._parent
    while node is not None:
        if node is target:
            return True
        if (depth := depth + 1) > MAX_TREE_DEPTH:
            raise TreeDepthError(f"command tree exceeds the maximum depth of {MAX_TREE_DEPTH}", tool=candidate)
        node = node._parent

    visited = set()
    stack = [(candidate, 0)]
    while stack:
        node, depth = stack.pop()
        if depth > MAX_TREE_DEPTH:
            raise TreeDepthError(f"command tree exceeds the maximum depth of {MAX_TREE_DEPTH}", tool=candidate)
        if id(node) in visited:
            continue
        visited.add(id(node))
        for child in node._children:
            if child is target:
                return True
            stack.append((child, depth + 1))
    return False


class Command(metaclass=CommandType):
    """
    command node: flags, children, parse state and metadata.

    construction
    - Command(long, short, descr, *, version, usage, notes, examples, logo,
      envprefix, completion, exit_on_builtins, disable_builtins, run)
    - at least one of long/short is required (SetupInvariantError otherwise).

    thread-safety
    - every mutable field sits behind one ReadWriteLock; accessors read under
      it, parse() writes under it. A separate mutex serializes parse() calls
      so concurrent callers observe a single execution.
    """
    __introspectable__ = (
        "long",
        "short",
        "descr",
        "version",
        "usage",
        "notes",
        "examples",
        "logo",
        "envprefix",
        "completion",
        "exit_on_builtins",
        "disable_builtins",
    )
    __displayable__ = ("long", "short", "descr", "version")

    def __init__(
            self,
            long="",
            short="",
            /,
            descr="",
            *,
            version="",
            usage="",
            notes=(),
            examples=(),
            logo="",
            envprefix="",
            completion=False,
            exit_on_builtins=True,
            disable_builtins=False,
            run=None,
    ):
        cls = type(self)
        long = _command_name(cls, "long", long)
        short = _command_name(cls, "short", short)
        if not long and not short:
            raise SetupInvariantError(f"{cls.__typename__} requires a long or a short name")
        if isinstance(notes, str):
            raise TypeError(f"{cls.__typename__} 'notes' must be an iterable of strings")
        notes = list(notes)
        if not all(isinstance(note, str) for note in notes):
            raise TypeError(f"{cls.__typename__} 'notes' must be an iterable of strings")

        self._lock = ReadWriteLock()
        self._latch = threading.Lock()
        self._state = ParseState.UNPARSED
        self._outcome = None

        self._long = long
        self._short = short
        self._descr = _setting(cls, "descr", descr)
        self._version = _setting(cls, "version", version)
        self._usage = _setting(cls, "usage", usage)
        self._notes = [note.strip() for note in notes]
        self._examples = [_example(example) for example in examples]
        self._logo = _setting(cls, "logo", logo)
        self._envprefix = _setting(cls, "envprefix", envprefix)
        self._completion = _setting(cls, "completion", completion)
        self._exit_on_builtins = _setting(cls, "exit_on_builtins", exit_on_builtins)
        self._disable_builtins = _setting(cls, "disable_builtins", disable_builtins)
        self._run = _setting(cls, "run", run)

        self._flags = FlagRegistry()
        self._builtins = {}
        self._mutexes = []
        self._requires = []
        self._children = []
        self._childmap = {}
        self._parent = None
        self._selected = None
        self._routed = False
        self._args = []

    # --- identity and tree ---

    @property
    def name(self):
        """long name when present, short name otherwise."""
        return self._long or self._short

    @property
    def parent(self):
        with self._lock.reading():
            return self._parent

    @property
    def children(self):
        with self._lock.reading():
            return tuple(self._children)

    @property
    def is_root(self):
        return self.parent is None

    @property
    def root(self):
        node = self
        while node._parent is not None:
            node = node._parent
        return node

    @property
    def path(self):
        """every command from the root down to this one."""
        path = [node := self]
        while node._parent is not None:
            path.append(node := node._parent)
        return tuple(reversed(path))

    @property
    def route(self):
        """'/' for the root, '/serve/' for its child serve, and so on."""
        return "/" + "".join(node.name + "/" for node in self.path[1:])

    @property
    def state(self):
        return self._state

    @property
    def is_parsed(self):
        return self._state is ParseState.PARSED

    def get_child(self, name, /, default=None):
        if not name:
            return default
        with self._lock.reading():
            return self._childmap.get(name, default)

    def has_child(self, name, /):
        return self.get_child(name) is not None

    def add_children(self, *children):
        """
        attach children to this command, all or nothing.

        every child is validated before any state changes:
        - not None and a Command;
        - no long/short name collision with existing children or the batch;
        - no cycle (this command reachable from the child).
        all failures are raised together as RejectedSubcommands. A child that
        already belongs to this command is skipped; a child attached elsewhere
        is moved here and detached from its old parent once this command's
        lock is released.
        """
        cls = type(self)
        moved = []
        with self._lock.writing():
            errors = []
            accepted = []
            claimed = dict(self._childmap)
            for child in children:
                if child is None:
                    errors.append(SetupInvariantError("subcommand cannot be None", tool=self))
                    continue
                if not isinstance(child, Command):
                    errors.append(SetupInvariantError(
                        f"{cls.__typename__} subcommand must be a command, not {type(child).__name__}", tool=self
                    ))
                    continue
                if child._parent is self or any(child is other for other in accepted):
                    continue
                rejected = False
                for which, name in (("long", child._long), ("short", child._short)):
                    if name and claimed.get(name, child) is not child:
                        errors.append(DuplicateNameError(
                            f"subcommand {which} name {name!r} already exists",
                            tool=self,
                            name=name,
                            hint=f"choose a different {which} name for the subcommand",
                        ))
                        rejected = True
                if _reaches(child, self):
                    errors.append(CycleDetectedError(
                        f"adding subcommand {child.name!r} to {self.name!r} would create a cycle",
                        tool=self,
                        name=child.name,
                    ))
                    rejected = True
                if rejected:
                    continue
                accepted.append(child)
                claimed.update((name, child) for name in (child._long, child._short) if name)

            if errors:
                raise RejectedSubcommands(errors, tool=self)

            for child in accepted:
                if child._parent is not None:
                    moved.append((child._parent, child))
                child._parent = self
                self._children.append(child)
                self._childmap.update((name, child) for name in (child._long, child._short) if name)
                logging.debug("attached subcommand %r under %r", child.name, self.name)

        for parent, child in moved:
            parent._detach(child)
        return self

    def _detach(self, child):
        with self._lock.writing():
            if child._parent is self:
                return
            self._children = [other for other in self._children if other is not child]
            self._childmap = {name: other for name, other in self._childmap.items() if other is not child}

    def subcommand(self, long="", short="", /, descr="", **options):
        """construct a child command, attach it and return it."""
        child = type(self)(long, short, descr, **options)
        self.add_children(child)
        return child

    # --- flags ---

    @property
    def flags(self):
        return self._flags

    def add_flag(self, flag, /):
        """register an initialized flag; returns the flag."""
        with self._lock.writing():
            return self._flags.register(flag)

    def add_flags(self, *flags):
        with self._lock.writing():
            for flag in flags:
                self._flags.register(flag)
        return self

    def get_flag(self, name, /):
        with self._lock.reading():
            return self._flags.get(name)

    def has_flag(self, name, /):
        return self.get_flag(name) is not None

    def effective_flags(self):
        """registered flags, plus the built-ins a first parse would register."""
        with self._lock.reading():
            flags = self._flags.flags()
            if self._state is ParseState.UNPARSED:
                flags += self._pending()
            return flags

    def _pending(self):
        if self._disable_builtins:
            return ()
        candidates = [BoolFlag("help", self._freeshort("h"), False, "show help")]
        if self._version and self._parent is None:
            candidates.append(BoolFlag("version", self._freeshort("v"), False, "show version"))
        if self._completion and self._parent is None:
            candidates.append(EnumFlag("completion", "", "none", "generate shell completion script", options=SHELLS))
        return tuple(flag for flag in candidates if self._flags.get_long(flag.long) is None)

    def _freeshort(self, short):
        return "" if self._flags.get_short(short) is not None else short

    def flag(self, cls, long="", short="", /, default=Unset, usage=Unset, **options):
        """construct a flag of the given class, register it and return it."""
        if not isinstance(cls, type) or not issubclass(cls, TypedFlag):
            raise TypeError(f"{type(self).__typename__} flag() first argument must be a flag class")
        return self.add_flag(cls(long, short, default, usage, **options))

    def add_mutex_group(self, name, flags, /, allow_none=True):
        """
        at most one of the named flags may be set; unless allow_none, exactly one.
        """
        members = self._members(name, flags)
        with self._lock.writing():
            self._mutexes.append((name, members, bool(allow_none)))
        return self

    def add_required_group(self, name, flags, /):
        """every one of the named flags must be set."""
        members = self._members(name, flags)
        with self._lock.writing():
            self._requires.append((name, members))
        return self

    def _members(self, group, names):
        if not isinstance(group, str) or not group.strip():
            raise TypeError(f"{type(self).__typename__} group name must be a non-empty string")
        if isinstance(names, str):
            raise TypeError(f"{type(self).__typename__} group flags must be an iterable of names")
        members = []
        for name in names:
            if (flag := self.get_flag(name)) is None:
                raise SetupInvariantError(f"group {group!r} references unknown flag {name!r}", tool=self)
            if flag not in members:
                members.append(flag)
        if len(members) < 2:
            raise SetupInvariantError(f"group {group!r} needs at least two flags", tool=self)
        return tuple(members)

    # --- positional arguments ---

    @property
    def args(self):
        with self._lock.reading():
            return list(self._args)

    def arg(self, index, /):
        """positional argument at index, or None when out of range."""
        with self._lock.reading():
            if 0 <= index < len(self._args):
                return self._args[index]
            return None

    @property
    def nargs(self):
        with self._lock.reading():
            return len(self._args)

    @property
    def nflags(self):
        """number of flags that received a value (command line or environment)."""
        with self._lock.reading():
            return sum(flag.is_set for flag in self._flags)

    # --- configuration ---

    def configure(self, **settings):
        """
        update settings after construction (same keywords as the constructor,
        except names, notes and examples).
        """
        cls = type(self)
        values = {name: _setting(cls, name, value) for name, value in settings.items()}
        with self._lock.writing():
            for name, value in values.items():
                setattr(self, "_" + name, value)
        return self

    def add_note(self, note, /):
        if not isinstance(note, str):
            raise TypeError(f"{type(self).__typename__} note must be a string")
        with self._lock.writing():
            self._notes.append(note.strip())
        return self

    def add_example(self, title, command, /):
        example = _example((title, command))
        with self._lock.writing():
            self._examples.append(example)
        return self

    # --- parsing ---

    def parse(self, args=Unset, /):
        """
        parse args (sys.argv[1:] by default) and dispatch to subcommands.

        returns True when a built-in (help/version/completion) asked the
        caller to exit, False otherwise. Only the first call does any work;
        later calls return the same result or raise the same fault.
        """
        return self._parse(_tokens(args), dispatch=True)

    def parse_flags_only(self, args=Unset, /):
        """parse() without subcommand dispatch."""
        return self._parse(_tokens(args), dispatch=False)

    def _parse(self, args, *, dispatch):
        self._validate_components()
        with self._latch:
            if self._state is ParseState.PARSED:
                return self._replay()
            self._state = ParseState.PARSING
            try:
                with self._lock.writing():
                    exit = self._execute(args, dispatch)
            except FlagException as fault:
                self._outcome = (False, fault)
            except Exception as error:
                logging.debug("recovered from unexpected failure in %r", self.name, exc_info=True)
                fault = PanicRecoveredError(
                    f"unexpected failure while parsing {self.name!r}: {error}",
                    tool=self,
                    trace=traceback.format_exc(),
                )
                fault.__cause__ = error
                self._outcome = (False, fault)
            else:
                self._outcome = (exit, None)
            finally:
                self._state = ParseState.PARSED if self._outcome is not None else ParseState.UNPARSED
            return self._replay()

    def _replay(self):
        exit, fault = self._outcome
        if fault is not None:
            raise fault
        return exit

    def _validate_components(self):
        with self._lock.reading():
            if not isinstance(self._flags, FlagRegistry):
                raise SetupInvariantError("invalid command state: flag registry is missing", tool=self)
            if not isinstance(self._children, list) or not isinstance(self._childmap, dict):
                raise SetupInvariantError("invalid command state: child index is missing", tool=self)
            for child in self._children:
                if any(self._childmap.get(name) is not child for name in (child._long, child._short) if name):
                    raise SetupInvariantError(
                        f"invalid command state: child index out of sync for {child.name!r}", tool=self
                    )
            if (
                self._state is ParseState.PARSED and
                not self._disable_builtins and
                self._flags.get_long("help") is None
            ):
                raise SetupInvariantError("invalid command state: built-in flags are missing", tool=self)

    def _execute(self, args, dispatch):
        for flag in self._pending():
            self._builtins[flag.long] = self._flags.register(flag)
            logging.debug("registered built-in flag %r on %r", flag.long, self.name)

        self._load_environment()

        resolved, positionals = self._tokenize(args)
        for flag, value in resolved:
            try:
                flag.set(value)
            except FlagValueError as error:
                raise FlagParseError(
                    f"failed to parse flag {_dashed(flag.name)}: {error}",
                    tool=self,
                    flag=flag,
                    value=value,
                ) from error
        self._args = positionals

        if self._intercept():
            return True

        for flag in self._flags:
            if flag.kind is FlagKind.ENUM:
                try:
                    flag.is_check(flag.get())
                except EnumValidationError as error:
                    raise EnumValidationError(f"flag {flag.name}: {error}", tool=self, flag=flag) from error

        self._check_groups()

        if dispatch and positionals and self._children:
            return self._dispatch(positionals)
        return False

    def _load_environment(self):
        for flag in self._flags:
            if not (env := flag.env):
                continue
            name = f"{self._envprefix}_{env}" if self._envprefix else env
            if not (value := os.environ.get(name)):
                continue
            try:
                flag.set(value)
            except FlagValueError as error:
                raise EnvLoadError(
                    f"failed to load environment variable {name} for flag {flag.name!r}: {error}",
                    tool=self,
                    flag=flag,
                    env=name,
                    hint=f"fix or unset {name}",
                ) from error
            logging.debug("loaded flag %r from environment variable %s", flag.name, name)

    def _tokenize(self, args):
        resolved = []
        index = 0
        while index < len(args):
            token = args[index]
            if token == "--":
                index += 1
                break
            if not token.startswith("-") or token == "-":
                break
            body = token[2:] if token.startswith("--") else token[1:]
            name, separator, inline = body.partition("=")
            if (flag := self._flags.get(name) if not name.startswith("-") else None) is None:
                raise UndefinedFlagError(
                    f"flag provided but not defined: {token.partition('=')[0]}",
                    tool=self,
                    token=token,
                    hint=self._suggest(name),
                )
            if separator:
                value = inline
            elif not flag.requires_value:
                value = "true"
            elif index + 1 < len(args):
                value = args[index := index + 1]
            else:
                raise FlagParseError(
                    f"flag needs an argument: {token}",
                    tool=self,
                    flag=flag,
                    token=token,
                    hint=f"pass a value as '{token} <value>' or '{token}=<value>'",
                )
            resolved.append((flag, value))
            index += 1
        return resolved, list(args[index:])

    def _suggest(self, name):
        if matches := difflib.get_close_matches(name, self._flags.names(), n=1):
            return f"did you mean '{_dashed(matches[0])}'?"
        if self._flags.get_long("help") is not None:
            return "run '%s --help' to see the available flags" % " ".join(node.name for node in self.path)
        return None

    def _intercept(self):
        if (help := self._builtins.get("help")) is not None and help.get():
            logging.debug("help requested on %r", self.name)
            self._helper()
            if self._exit_on_builtins:
                return True
        if (version := self._builtins.get("version")) is not None and version.get():
            logging.debug("version requested on %r", self.name)
            self._versioner()
            if self._exit_on_builtins:
                return True
        if (completion := self._builtins.get("completion")) is not None and (shell := completion.get()) != "none":
            logging.debug("%s completion requested on %r", shell, self.name)
            sys.stdout.write(generate(self, shell))
            sys.stdout.flush()
            if self._exit_on_builtins:
                return True
        return False

    def _check_groups(self):
        for name, members, allow_none in self._mutexes:
            chosen = [flag for flag in members if flag.is_set]
            listing = ", ".join(_dashed(flag.name) for flag in members)
            if len(chosen) > 1:
                raise MutexGroupError(
                    f"flags {', '.join(_dashed(flag.name) for flag in chosen)} in group {name!r} are mutually exclusive",
                    tool=self,
                    group=name,
                    hint=f"use only one of {listing}",
                )
            if not chosen and not allow_none:
                raise MutexGroupError(
                    f"one of the flags {listing} in group {name!r} is required",
                    tool=self,
                    group=name,
                )
        for name, members in self._requires:
            if missing := [flag for flag in members if not flag.is_set]:
                raise RequiredGroupError(
                    f"group {name!r} requires flags {', '.join(_dashed(flag.name) for flag in missing)}",
                    tool=self,
                    group=name,
                )

    def _dispatch(self, positionals):
        selector, *remaining = positionals
        if (child := self._childmap.get(selector)) is None:
            logging.debug("%r is not a subcommand of %r, kept as positional", selector, self.name)
            return False
        self._args = []
        self._selected = child
        logging.debug("dispatching %d argument(s) to subcommand %r", len(remaining), child.name)
        try:
            return child._parse(remaining, dispatch=True)
        except FlagException as error:
            raise SubcommandParseError(
                f"failed to parse subcommand {selector!r}: {error}",
                tool=child,
                subcommand=selector,
                hint=error.hint,
            ) from error

    # --- execution ---

    def run(self):
        """invoke this command's run callback with the command itself."""
        if (callback := self._run) is None:
            raise SetupInvariantError(f"command {self.name!r} has no run callback", tool=self)
        return callback(self)

    def parse_and_route(self, args=Unset, /):
        """
        parse, then run the callback of the deepest command reached (or of the
        nearest ancestor that has one). Returns the parse should-exit flag.

        routing is one-shot like parsing: later calls replay the parse outcome
        and do not run the callback again.
        """
        if self.parse(args):
            return True
        with self._latch:
            if self._routed:
                return False
            self._routed = True
        target = self
        while target._selected is not None:
            target = target._selected
        while target is not None:
            if target._run is not None:
                logging.debug("routing to %r", target.name)
                target.run()
                break
            target = None if target is self else target._parent
        return False

    # --- rendering ---

    def _styles(self):
        return defaultdict(str, {
            "usage-label": "bold #00E6FF",
            "program-name": "bold #FF4D94",
            "usage-section": "bold #36C5F0",
            "description-section": "italic #A3A3A3",
            "logo": "bold #FF4D94",
            "group-label": "bold #FFFFFF",
            "flag-name": "bold #22C55E",
            "metavar": "bold #FFD600",
            "flag-description": "#9CA3AF",
            "choice": "bold #FF4D94",
            "env": "#737373",
            "children-title": "bold #FFFFFF",
            "children-table": "#4B5563",
            "children": "bold #36C5F0",
            "children-description": "#9CA3AF",
            "notes-label": "bold #00E6FF",
            "notes-dot": "#00E6FF dim",
            "note": "#D1D5DB",
            "examples-label": "bold #22C55E",
            "examples-dot": "#22C55E dim",
            "example": "#E5E7EB",
            "program-version": "bold #00E6FF",
        } | getattr(__import__("__main__"), "__styles__", {}))

    def _helper(self):
        """
        render help for this command to stdout.

        sections: logo, usage, description, subcommands table, flags, notes,
        examples (plus shell completion hints on a root with completion).
        palette keys can be overridden through __main__.__styles__.
        """
        console = Console()
        styles = self._styles()

        def text(fragment, style=""):
            return Text(str(fragment), styles[style]) if fragment else Text("")

        route = " ".join(node.name for node in self.path)
        flags = self._flags.flags()
        renders = []

        if self._logo:
            renders.append(text(self._logo.rstrip("\n"), "logo"))

        usage = Text()
        usage.append("usage", styles["usage-label"]).append(": ")
        if self._usage:
            usage.append(text(self._usage, "usage-section"))
        else:
            usage.append(text(route, "program-name"))
            if flags:
                usage.append(" [flags]")
            if self._children:
                usage.append(" <command>")
            usage.append(" [args...]")
        renders.append(usage.append("\n"))

        if self._descr:
            renders.append(text(self._descr, "description-section").append("\n"))

        if self._children:
            table = Table(
                "name", "description",
                title=text("subcommands" if self._parent is not None else "commands", "children-title"),
                box=ROUNDED,
                style=styles["children-table"],
                header_style=styles["children-title"],
            )
            for child in self._children:
                table.add_row(
                    text(", ".join(filter(None, (child._long, child._short))), "children"),
                    text(child._descr or f"run '{route} {child.name} --help' for details", "children-description"),
                )
            renders.append(table)

        if flags:
            section = Text()
            section.append(text("flags", "group-label")).append(":\n")
            grid = Table.grid(padding=(0, 2))
            grid.add_column(no_wrap=True)
            grid.add_column()
            for flag in flags:
                names = Text(", ").join(
                    text(name, "flag-name") for name in (
                        "-" + flag.short if flag.short else "",
                        "--" + flag.long if flag.long else "",
                    ) if name
                )
                if flag.requires_value:
                    names.append(" ").append(text(f"<{flag.kind.value}>", "metavar"))
                descr = text(flag.usage, "flag-description")
                if flag.kind is FlagKind.ENUM:
                    descr.append(" [").append(Text("|").join(text(option, "choice") for option in flag.options))
                    descr.append("]")
                if flag.kind is not FlagKind.BOOL and (default := flag.display()):
                    descr.append(text(f" (default: {default})", "flag-description"))
                if flag.env:
                    variable = f"{self._envprefix}_{flag.env}" if self._envprefix else flag.env
                    descr.append(text(f" [env: {variable}]", "env"))
                grid.add_row(Text("  ").append(names), descr)
            renders.append(Group(section, grid, Text("")))

        notes = list(self._notes)
        examples = list(self._examples)
        if self._completion and self._parent is None:
            notes.append("shell completion scripts are generated with --completion and never call back into the program")
            examples.append(("enable bash completion", f"source <({route} --completion bash)"))
            examples.append(("enable powershell completion", f"{route} --completion powershell | Out-String | Invoke-Expression"))

        if notes:
            section = Text()
            section.append(text("notes", "notes-label")).append(":\n")
            for note in notes:
                section.append(text(" • ", "notes-dot")).append(text(note, "note")).append("\n")
            renders.append(section)

        if examples:
            section = Text()
            section.append(text("examples", "examples-label")).append(":\n")
            for title, command in examples:
                section.append(text(" • ", "examples-dot")).append(text(title, "example")).append("\n")
                section.append("     $ ").append(text(command, "example")).append("\n")
            renders.append(section)

        if isinstance(renders[-1], Text):
            renders[-1].rstrip()
        console.print(Group(*renders))

    def _versioner(self):
        """render '<name> <version>' (below the logo, when one is set) to stdout."""
        console = Console()
        styles = self._styles()
        renders = []
        if self._logo:
            renders.append(Text(self._logo.rstrip("\n"), styles["logo"]))
        renders.append(Text.assemble(
            (self.name, styles["program-name"]), " ", (self._version, styles["program-version"])
        ))
        console.print(Group(*renders))

    # --- shortcuts (kept last: these names shadow builtins in the class body) ---

    def string(self, long="", short="", /, default="", usage="", **options):
        return self.flag(StringFlag, long, short, default, usage, **options)

    def int(self, long="", short="", /, default=0, usage="", **options):
        return self.flag(IntFlag, long, short, default, usage, **options)

    def bool(self, long="", short="", /, default=False, usage="", **options):
        return self.flag(BoolFlag, long, short, default, usage, **options)

    def float(self, long="", short="", /, default=0.0, usage="", **options):
        return self.flag(FloatFlag, long, short, default, usage, **options)

    def enum(self, long="", short="", /, default=Unset, usage="", *, options, **kwargs):
        return self.flag(EnumFlag, long, short, default, usage, options=options, **kwargs)

    def duration(self, long="", short="", /, default=Unset, usage="", **options):
        return self.flag(DurationFlag, long, short, default, usage, **options)

    def slice(self, long="", short="", /, default=(), usage="", **options):
        return self.flag(StringSliceFlag, long, short, default, usage, **options)

    def map(self, long="", short="", /, default=Unset, usage="", **options):
        return self.flag(MapFlag, long, short, default, usage, **options)

    def filepath(self, long="", short="", /, default=None, usage="", **options):
        return self.flag(PathFlag, long, short, default, usage, **options)

    def url(self, long="", short="", /, default="", usage="", **options):
        return self.flag(URLFlag, long, short, default, usage, **options)


def invoke(command, prompt=Unset, /):
    """
    run a command tree as a standalone program.

    - prompt: Unset (sys.argv[1:]), a shell-like string (shlex.split) or an
      iterable of strings.
    - exits with status 0 when a built-in asked to exit; faults are rendered
      on stderr and exit with status 1. Otherwise returns normally.
    """
    if not isinstance(command, Command):
        raise TypeError("invoke() first argument must be a command")
    tokens = shlex.split(prompt) if isinstance(prompt, str) else _tokens(prompt)
    try:
        exit = command.parse_and_route(tokens)
    except FlagException as fault:
        trigger(fault, shell=True, tool=command)
    if exit:
        sys.exit(0)


__all__ = (
    "Command",
    "ParseState",
    "MAX_TREE_DEPTH",
    "invoke",
)

# Remove the internal metaclass from the module namespace; not part of the public API.
del CommandType
