"""
qflag faults (errors) and rendering.

Scope
- FaultCode: stable numeric identifiers for every failure the engine reports,
  grouped by domain so logs and searches stay predictable.
- FlagException: base type carrying message + options; knows how to render
  itself (rich) and how to be re-parameterized through copy.replace().
- RejectedSubcommands: exception group joining every add_children() failure.
- trigger(): raise a fault, or in shell mode print it to stderr and exit.
- getdoc(): optional description lookup for a code from the host application.

Propagation
- The engine itself only raises. Rendering is opt-in for callers (invoke()
  or trigger() with shell=True); parsing never writes error text on its own.
"""
import copy
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping (by domain)
    - setup (211xx)
      • SETUP_INVARIANT_VIOLATION, TREE_DEPTH_EXCEEDED
    - registration (212xx)
      • INVALID_NAME, DUPLICATE_NAME, CYCLE_DETECTED
    - tokens (213xx)
      • UNDEFINED_FLAG, FLAG_PARSE_FAILED, INVALID_FLAG_VALUE
    - validation (214xx)
      • ENUM_VALIDATION_FAILED, ENV_LOAD_FAILED, MUTEX_GROUP_VIOLATION,
        REQUIRED_GROUP_VIOLATION
    - dispatch (215xx)
      • SUBCOMMAND_PARSE_FAILED
    - containment (219xx)
      • PANIC_RECOVERED
    """
    # --- setup (211xx) ---
    SETUP_INVARIANT_VIOLATION   = 21101
    TREE_DEPTH_EXCEEDED         = 21102

    # --- registration (212xx) ---
    INVALID_NAME                = 21201
    DUPLICATE_NAME              = 21202
    CYCLE_DETECTED              = 21203

    # --- tokens (213xx) ---
    UNDEFINED_FLAG              = 21301
    FLAG_PARSE_FAILED           = 21302
    INVALID_FLAG_VALUE          = 21303

    # --- validation (214xx) ---
    ENUM_VALIDATION_FAILED      = 21401
    ENV_LOAD_FAILED             = 21402
    MUTEX_GROUP_VIOLATION       = 21403
    REQUIRED_GROUP_VIOLATION    = 21404

    # --- dispatch (215xx) ---
    SUBCOMMAND_PARSE_FAILED     = 21501

    # --- containment (219xx) ---
    PANIC_RECOVERED             = 21901

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__ to
        override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class FlagException(Exception):
    """
    base fault of the engine.

    options (all optional, read through self.options)
    - code: FaultCode (defaults to the class __fault__)
    - title: short headline (defaults to the class __title__)
    - hint: one actionable sentence
    - tool: the Command the fault belongs to (used for the program name)
    - shell, fancy, colorful: rendering switches used by trigger()/__rich__
    - any other context (flag, value, token, group, ...)
    """
    __fault__ = FaultCode.SETUP_INVARIANT_VIOLATION
    __title__ = "fault"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code", type(self).__fault__)

    @property
    def title(self):
        return self.options.get("title", type(self).__title__)

    @property
    def hint(self):
        return self.options.get("hint")

    def __str__(self):
        return "" if self.message is Unset else self.message

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # pinky title

            # body
            "error-message": "#C8C8D0",  # soft gray message
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", True)
        fancy = self.options.get("fancy", False)

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        tool = self.options.get("tool")
        prog = getattr(main, "__prog__", tool.root.name if tool is not None else "qflag")

        header = Text.assemble(
            "[ ",
            text(prog, styler("prog-name")),
            " | ",
            text(self.code.normalize(), styler("code")),
            " | ",
            text(self.title.title(), styler("error-title")),
            " ]"
        )
        renders = [text(str(self), styler("error-message"))]
        if self.hint:
            renders.append(Text.assemble(text(" > ", styler("hint-arrow")), text(self.hint, styler("hint"))))

        if fancy:
            return Panel(Group(*renders), title=header, title_align="left")
        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        fault = type(self)(self.message, **{**self.options, **overrides})
        fault.__cause__ = self.__cause__
        return fault


class SetupInvariantError(FlagException):
    __fault__ = FaultCode.SETUP_INVARIANT_VIOLATION
    __title__ = "setup invariant violation"


class TreeDepthError(SetupInvariantError):
    __fault__ = FaultCode.TREE_DEPTH_EXCEEDED
    __title__ = "command tree too deep"


class InvalidNameError(FlagException):
    __fault__ = FaultCode.INVALID_NAME
    __title__ = "invalid name"


class DuplicateNameError(FlagException):
    __fault__ = FaultCode.DUPLICATE_NAME
    __title__ = "duplicate name"


class CycleDetectedError(FlagException):
    __fault__ = FaultCode.CYCLE_DETECTED
    __title__ = "cycle detected"


class UndefinedFlagError(FlagException):
    __fault__ = FaultCode.UNDEFINED_FLAG
    __title__ = "undefined flag"


class FlagParseError(FlagException):
    __fault__ = FaultCode.FLAG_PARSE_FAILED
    __title__ = "flag parse failed"


class FlagValueError(FlagException, ValueError):
    __fault__ = FaultCode.INVALID_FLAG_VALUE
    __title__ = "invalid flag value"


class EnumValidationError(FlagValueError):
    __fault__ = FaultCode.ENUM_VALIDATION_FAILED
    __title__ = "enum validation failed"


class EnvLoadError(FlagException):
    __fault__ = FaultCode.ENV_LOAD_FAILED
    __title__ = "environment load failed"


class MutexGroupError(FlagException):
    __fault__ = FaultCode.MUTEX_GROUP_VIOLATION
    __title__ = "mutually exclusive flags"


class RequiredGroupError(FlagException):
    __fault__ = FaultCode.REQUIRED_GROUP_VIOLATION
    __title__ = "required flags missing"


class SubcommandParseError(FlagException):
    __fault__ = FaultCode.SUBCOMMAND_PARSE_FAILED
    __title__ = "subcommand parse failed"


class PanicRecoveredError(FlagException):
    __fault__ = FaultCode.PANIC_RECOVERED
    __title__ = "unexpected failure"

    @property
    def trace(self):
        return self.options.get("trace", "")


class RejectedSubcommands(ExceptionGroup):
    """
    every validation failure of a single add_children() call, joined.
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "subcommands rejected", exceptions)

    def __init__(self, exceptions, **options):
        super().__init__("subcommands rejected", tuple(exceptions))
        self.options = MappingProxyType(options)

    def derive(self, exceptions):
        return type(self)(exceptions, **self.options)

    def __rich__(self):
        return Group(*(copy.replace(exception, **self.options) for exception in self.exceptions))


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods.
    - options are merged into the fault (copy.replace) before triggering.
    - shell=True prints through the stderr console and exits with status 1;
      otherwise the fault is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code from __main__.__docs__.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "FlagException",
    "SetupInvariantError",
    "TreeDepthError",
    "InvalidNameError",
    "DuplicateNameError",
    "CycleDetectedError",
    "UndefinedFlagError",
    "FlagParseError",
    "FlagValueError",
    "EnumValidationError",
    "EnvLoadError",
    "MutexGroupError",
    "RequiredGroupError",
    "SubcommandParseError",
    "PanicRecoveredError",
    "RejectedSubcommands",
    "FaultCode",
    "trigger",
    "getdoc",
)
