"""
Commands module behavioral tests (tree, parse state machine, built-ins).

Scope
- Validate tree operations: batch add_children, name collisions, cycles,
  re-parenting.
- Validate the one-shot parse latch, value priority (default < environment <
  command line), tokenization and subcommand dispatch.
- Validate built-in flags (help, version, completion), flag groups, panic
  recovery, routing and the invoke() runner.
- Validate reader/writer discipline while a parse is in flight.

Conventions
- Test method names follow CamelCase per project convention.
- Built-in output is captured by redirecting stdout.
"""

from __future__ import annotations

import contextlib
import io
import os
import threading
import time
import unittest
from unittest import TestCase, mock

from qflag import Command, ParseState, StringFlag, MAX_TREE_DEPTH, invoke
from qflag.faults import (
    SetupInvariantError,
    InvalidNameError,
    DuplicateNameError,
    CycleDetectedError,
    TreeDepthError,
    UndefinedFlagError,
    FlagParseError,
    EnumValidationError,
    EnvLoadError,
    MutexGroupError,
    RequiredGroupError,
    SubcommandParseError,
    PanicRecoveredError,
    RejectedSubcommands,
)


def _quiet(callable, *args):
    stdout = io.StringIO()
    with contextlib.redirect_stdout(stdout):
        result = callable(*args)
    return result, stdout.getvalue()


class TestCommandTree(TestCase):
    """Behavioral tests for Command construction and tree operations."""

    def testNamesRequired(self):
        with self.assertRaises(SetupInvariantError):
            Command()
        with self.assertRaises(SetupInvariantError):
            Command("  ", "")

    def testNotesMustBeStrings(self):
        self.assertEqual(Command("app", notes=("a", " b ")).notes, ["a", "b"])
        with self.assertRaises(TypeError):
            Command("app", notes="single note")
        with self.assertRaises(TypeError):
            Command("app", notes=["ok", 3])

    def testIllegalNameRejected(self):
        with self.assertRaises(InvalidNameError):
            Command("my app")

    def testNameFallsBackToShort(self):
        self.assertEqual(Command("", "s").name, "s")
        self.assertEqual(Command("serve", "s").name, "serve")

    def testAddChildren(self):
        app = Command("app")
        serve = Command("serve", "s")
        build = Command("build")
        self.assertIs(app.add_children(serve, build), app)
        self.assertEqual(app.children, (serve, build))
        self.assertIs(app.get_child("serve"), serve)
        self.assertIs(app.get_child("s"), serve)
        self.assertIsNone(app.get_child(""))
        self.assertIs(serve.parent, app)
        self.assertIs(serve.root, app)
        self.assertEqual(serve.path, (app, serve))
        self.assertEqual(serve.route, "/serve/")
        self.assertEqual(app.route, "/")
        self.assertTrue(app.is_root)
        self.assertFalse(serve.is_root)

    def testSubcommandFactory(self):
        app = Command("app")
        serve = app.subcommand("serve", "s", "run the server")
        self.assertIs(serve.parent, app)
        self.assertEqual(serve.descr, "run the server")
        self.assertTrue(app.has_child("s"))

    def testAddingTwiceIsIdempotent(self):
        app = Command("app")
        serve = Command("serve")
        app.add_children(serve)
        app.add_children(serve, serve)
        self.assertEqual(app.children, (serve,))

    def testBatchIsAllOrNothing(self):
        app = Command("app")
        app.add_children(Command("serve", "s"))
        fresh = Command("fresh")
        clash = Command("other", "s")
        with self.assertRaises(RejectedSubcommands) as context:
            app.add_children(fresh, clash, None)
        faults = context.exception.exceptions
        self.assertEqual(len(faults), 2)
        self.assertIsInstance(faults[0], DuplicateNameError)
        self.assertIsInstance(faults[1], SetupInvariantError)
        self.assertEqual(len(app.children), 1)
        self.assertIsNone(fresh.parent)
        self.assertFalse(app.has_child("fresh"))

    def testCollisionInsideBatch(self):
        app = Command("app")
        with self.assertRaises(RejectedSubcommands) as context:
            app.add_children(Command("serve"), Command("serve"))
        self.assertIsInstance(context.exception.exceptions[0], DuplicateNameError)
        self.assertEqual(app.children, ())

    def testCycleRejected(self):
        a, b, c = Command("a"), Command("b"), Command("c")
        c.add_children(b)
        b.add_children(a)
        with self.assertRaises(RejectedSubcommands) as context:
            a.add_children(c)
        self.assertIsInstance(context.exception.exceptions[0], CycleDetectedError)
        self.assertIsNone(c.parent)
        self.assertEqual(a.children, ())
        self.assertEqual(c.children, (b,))
        self.assertEqual(b.children, (a,))

    def testAncestorCycleRejected(self):
        a, b, c = Command("a"), Command("b"), Command("c")
        a.add_children(b)
        b.add_children(c)
        with self.assertRaises(RejectedSubcommands) as context:
            a.add_children(c)
        self.assertEqual([type(fault) for fault in context.exception.exceptions], [CycleDetectedError])
        self.assertIs(c.parent, b)
        self.assertEqual(a.children, (b,))
        self.assertEqual(b.children, (c,))

    def testDepthCeiling(self):
        chain = [Command(f"n{index}") for index in range(MAX_TREE_DEPTH + 3)]
        for parent, child in zip(chain, chain[1:]):
            parent.add_children(child)
        other = Command("other")
        with self.assertRaises(TreeDepthError):
            other.add_children(chain[-1])
        self.assertIs(chain[-1].parent, chain[-2])
        self.assertEqual(other.children, ())

    def testSelfAddRejected(self):
        a = Command("a")
        with self.assertRaises(RejectedSubcommands) as context:
            a.add_children(a)
        self.assertIsInstance(context.exception.exceptions[0], CycleDetectedError)

    def testReparenting(self):
        first, second = Command("first"), Command("second")
        child = Command("child", "c")
        first.add_children(child)
        second.add_children(child)
        self.assertIs(child.parent, second)
        self.assertEqual(first.children, ())
        self.assertFalse(first.has_child("c"))
        self.assertIs(second.get_child("c"), child)

    def testConfiguration(self):
        app = Command(
            "app",
            descr="demo",
            version="1.0.0",
            notes=["first note"],
            examples=[("serve", "app serve -p 80")],
            envprefix="APP_",
        )
        app.add_note("second note")
        app.add_example("build", "app build")
        app.configure(version="2.0.0", exit_on_builtins=False)
        self.assertEqual(app.version, "2.0.0")
        self.assertEqual(app.notes, ["first note", "second note"])
        self.assertEqual(app.examples, [("serve", "app serve -p 80"), ("build", "app build")])
        self.assertEqual(app.envprefix, "APP")
        self.assertFalse(app.exit_on_builtins)
        with self.assertRaises(TypeError):
            app.configure(colour=True)
        with self.assertRaises(TypeError):
            app.configure(version=2)

    def testRepr(self):
        self.assertTrue(repr(Command("app", descr="demo")).startswith("command(long='app'"))


class TestParse(TestCase):
    """Behavioral tests for the parse state machine."""

    def testServeScenario(self):
        app = Command("app")
        serve = app.subcommand("serve")
        port = serve.int("port", "p", 8080, "listen port")
        build = app.subcommand("build")
        self.assertFalse(app.parse(["serve", "-p", "9090"]))
        self.assertEqual(app.args, [])
        self.assertEqual(port.get(), 9090)
        self.assertTrue(serve.is_parsed)
        self.assertTrue(app.is_parsed)
        self.assertFalse(build.is_parsed)
        self.assertIs(app.state, ParseState.PARSED)

    def testSecondParseIsNoOp(self):
        app = Command("app")
        name = app.string("name", "n", "anon")
        self.assertFalse(app.parse(["--name", "eve", "first"]))
        self.assertFalse(app.parse(["--name", "bob", "second"]))
        self.assertEqual(name.get(), "eve")
        self.assertEqual(app.args, ["first"])

    def testUndefinedFlagLatchesWithoutMutation(self):
        app = Command("app")
        port = app.int("port", "p", 8080)
        with self.assertRaises(UndefinedFlagError) as context:
            app.parse(["--port", "1", "--unknown"])
        self.assertTrue(app.is_parsed)
        self.assertEqual(port.get(), 8080)
        self.assertFalse(port.is_set)
        self.assertEqual(str(context.exception), "flag provided but not defined: --unknown")
        with self.assertRaises(UndefinedFlagError) as replay:
            app.parse([])
        self.assertIs(replay.exception, context.exception)

    def testUndefinedFlagSuggestion(self):
        app = Command("app")
        app.int("port", "p")
        with self.assertRaises(UndefinedFlagError) as context:
            app.parse(["--prot", "1"])
        self.assertEqual(context.exception.hint, "did you mean '--port'?")

    def testDefaultEnvironmentCommandLinePriority(self):
        variable = "QFLAG_TEST_PRIORITY"

        def fresh():
            app = Command("app")
            return app, app.string("flag", "f", "D").bind_env(variable)

        with mock.patch.dict(os.environ):
            os.environ.pop(variable, None)
            app, flag = fresh()
            app.parse([])
            self.assertEqual(flag.get(), "D")

            os.environ[variable] = "v1"
            app, flag = fresh()
            app.parse([])
            self.assertEqual(flag.get(), "v1")

            app, flag = fresh()
            app.parse(["--flag", "v2"])
            self.assertEqual(flag.get(), "v2")

    def testEmptyEnvironmentValueIgnored(self):
        with mock.patch.dict(os.environ, {"QFLAG_TEST_EMPTY": ""}):
            app = Command("app")
            port = app.int("port", "p", 8080).bind_env("QFLAG_TEST_EMPTY")
            app.parse([])
            self.assertEqual(port.get(), 8080)

    def testEnvironmentFailureIsHard(self):
        with mock.patch.dict(os.environ, {"QFLAG_TEST_PORT": "eighty"}):
            app = Command("app")
            port = app.int("port", "p", 8080).bind_env("QFLAG_TEST_PORT")
            with self.assertRaises(EnvLoadError):
                app.parse(["--port", "90"])
            self.assertEqual(port.get(), 8080)

    def testEnvironmentPrefix(self):
        with mock.patch.dict(os.environ, {"QFLAG_PORT": "7070", "PORT": "1"}):
            app = Command("app", envprefix="QFLAG")
            port = app.int("port", "p", 8080).bind_env("PORT")
            app.parse([])
            self.assertEqual(port.get(), 7070)

    def testSliceIsReplaced(self):
        app = Command("app")
        items = app.slice("slice", "s", ["a", "b"])
        app.parse(["--slice", "c,d,e"])
        self.assertEqual(items.get(), ["c", "d", "e"])

    def testInlineAndSingleDashForms(self):
        app = Command("app")
        port = app.int("port", "p")
        name = app.string("name", "n")
        app.parse(["-port=80", "--n=eve"])
        self.assertEqual((port.get(), name.get()), (80, "eve"))

    def testBoolForms(self):
        app = Command("app")
        verbose = app.bool("verbose", "v")
        app.parse(["-v", "file"])
        self.assertTrue(verbose.get())
        self.assertEqual(app.args, ["file"])

        other = Command("other")
        quiet = other.bool("quiet", "q", True)
        other.parse(["--quiet=false"])
        self.assertFalse(quiet.get())

    def testMissingValue(self):
        app = Command("app")
        app.int("port", "p")
        with self.assertRaises(FlagParseError) as context:
            app.parse(["--port"])
        self.assertEqual(str(context.exception), "flag needs an argument: --port")

    def testBadValueNamesFlag(self):
        app = Command("app")
        port = app.int("port", "p", 8080)
        with self.assertRaises(FlagParseError) as context:
            app.parse(["-p", "x"])
        self.assertIn("--port", str(context.exception))
        self.assertIs(context.exception.options["flag"], port)
        self.assertEqual(port.get(), 8080)

    def testEnumOutsideOptions(self):
        app = Command("app")
        mode = app.enum("mode", "m", options=("fast", "safe"))
        with self.assertRaises(FlagParseError) as context:
            app.parse(["--mode", "slow"])
        self.assertIsInstance(context.exception.__cause__, EnumValidationError)
        self.assertEqual(mode.get(), "fast")

    def testTerminatorAndFirstPositional(self):
        app = Command("app")
        port = app.int("port", "p", 1)
        app.parse(["--", "-p", "2"])
        self.assertEqual(app.args, ["-p", "2"])
        self.assertEqual(port.get(), 1)

        other = Command("other")
        size = other.int("size", "s", 1)
        other.parse(["file", "--size", "2"])
        self.assertEqual(other.args, ["file", "--size", "2"])
        self.assertEqual(size.get(), 1)

    def testUnknownSubcommandStaysPositional(self):
        app = Command("app")
        app.subcommand("serve")
        self.assertFalse(app.parse(["deploy", "now"]))
        self.assertEqual(app.args, ["deploy", "now"])

    def testParseFlagsOnlySkipsDispatch(self):
        app = Command("app")
        serve = app.subcommand("serve")
        app.parse_flags_only(["serve"])
        self.assertEqual(app.args, ["serve"])
        self.assertFalse(serve.is_parsed)

    def testSubcommandErrorIsWrapped(self):
        app = Command("app")
        app.subcommand("serve", "s")
        with self.assertRaises(SubcommandParseError) as context:
            app.parse(["s", "--bogus"])
        self.assertIn("failed to parse subcommand 's'", str(context.exception))
        self.assertIsInstance(context.exception.__cause__, UndefinedFlagError)

    def testPositionalAccessors(self):
        app = Command("app")
        app.bool("verbose", "v")
        app.int("port", "p")
        app.parse(["-v", "a", "b"])
        self.assertEqual(app.nargs, 2)
        self.assertEqual(app.arg(1), "b")
        self.assertIsNone(app.arg(2))
        self.assertIsNone(app.arg(-1))
        self.assertEqual(app.nflags, 1)

    def testSetupFailureDoesNotLatch(self):
        app = Command("app")
        app._flags = None
        with self.assertRaises(SetupInvariantError):
            app.parse([])
        self.assertIs(app.state, ParseState.UNPARSED)

    def testArgumentsMustBeStrings(self):
        with self.assertRaises(TypeError):
            Command("app").parse(["--port", 80])

    def testPanicIsRecovered(self):
        class ExplodingFlag(StringFlag):
            def parse(self, raw, /):
                raise RuntimeError("boom")

        app = Command("app")
        app.add_flag(ExplodingFlag("boom", "b"))
        with self.assertRaises(PanicRecoveredError) as context:
            app.parse(["--boom", "x"])
        self.assertIsInstance(context.exception.__cause__, RuntimeError)
        self.assertIn("RuntimeError", context.exception.trace)
        self.assertTrue(app.is_parsed)


class TestBuiltins(TestCase):
    """Behavioral tests for help, version and completion built-ins."""

    def testHelpRequestsExit(self):
        app = Command("app", descr="demo application")
        app.int("port", "p", 8080, "listen port")
        app.subcommand("serve", descr="run the server")
        result, output = _quiet(app.parse, ["--help"])
        self.assertTrue(result)
        self.assertIn("usage", output)
        self.assertIn("demo application", output)
        self.assertIn("--port", output)
        self.assertIn("listen port", output)
        self.assertIn("show help", output)
        self.assertIn("serve", output)

    def testHelpWithoutExitKeepsParsing(self):
        app = Command("app", exit_on_builtins=False)
        serve = app.subcommand("serve")
        result, output = _quiet(app.parse, ["-h", "serve"])
        self.assertFalse(result)
        self.assertIn("usage", output)
        self.assertTrue(serve.is_parsed)

    def testHelpOnSubcommand(self):
        app = Command("app")
        serve = app.subcommand("serve", descr="run the server")
        serve.int("port", "p", 8080, "listen port")
        result, output = _quiet(app.parse, ["serve", "--help"])
        self.assertTrue(result)
        self.assertIn("app serve", output)
        self.assertIn("listen port", output)

    def testHelpListsNotesAndExamples(self):
        app = Command("app", notes=["reads ~/.apprc"], examples=[("start serving", "app serve")], completion=True)
        _, output = _quiet(app.parse, ["--help"])
        self.assertIn("reads ~/.apprc", output)
        self.assertIn("start serving", output)
        self.assertIn("app --completion bash", output)

    def testVersion(self):
        app = Command("app", version="1.2.3")
        result, output = _quiet(app.parse, ["-v"])
        self.assertTrue(result)
        self.assertIn("1.2.3", output)

    def testVersionNeedsConfiguredVersion(self):
        with self.assertRaises(UndefinedFlagError):
            Command("app").parse(["--version"])

    def testVersionIsRootOnly(self):
        app = Command("app", version="1.0.0")
        serve = app.subcommand("serve", version="0.1.0")
        self.assertIsNone(next((flag for flag in serve.effective_flags() if flag.long == "version"), None))
        self.assertIsNotNone(next((flag for flag in app.effective_flags() if flag.long == "version"), None))

    def testCompletionWritesScript(self):
        app = Command("app", completion=True)
        app.subcommand("serve")
        result, output = _quiet(app.parse, ["--completion", "bash"])
        self.assertTrue(result)
        self.assertIn("complete -F", output)
        self.assertIn('"/serve/"', output)

    def testCompletionNoneIsNoOp(self):
        app = Command("app", completion=True)
        result, output = _quiet(app.parse, ["--completion", "none"])
        self.assertFalse(result)
        self.assertEqual(output, "")

    def testCompletionRejectsUnknownShell(self):
        app = Command("app", completion=True)
        with self.assertRaises(FlagParseError):
            app.parse(["--completion", "zsh"])

    def testCompletionNeedsOptIn(self):
        with self.assertRaises(UndefinedFlagError):
            Command("app").parse(["--completion", "bash"])

    def testTakenLongNameSkipsBuiltin(self):
        app = Command("app")
        topic = app.string("help", "", "", "help topic")
        result, output = _quiet(app.parse, ["--help", "flags"])
        self.assertFalse(result)
        self.assertEqual(output, "")
        self.assertEqual(topic.get(), "flags")

    def testTakenShortNameIsDropped(self):
        app = Command("app")
        hidden = app.bool("hidden", "h")
        result, _ = _quiet(app.parse, ["-h"])
        self.assertFalse(result)
        self.assertTrue(hidden.get())
        self.assertEqual(app.get_flag("help").short, "")

    def testDisabledBuiltins(self):
        app = Command("app", disable_builtins=True)
        with self.assertRaises(UndefinedFlagError):
            app.parse(["--help"])

    def testEffectiveFlagsBeforeAndAfterParse(self):
        app = Command("app")
        app.int("port", "p")
        self.assertEqual([flag.name for flag in app.effective_flags()], ["port", "help"])
        self.assertFalse(app.has_flag("help"))
        app.parse([])
        self.assertTrue(app.has_flag("help"))
        self.assertEqual([flag.name for flag in app.effective_flags()], ["port", "help"])


class TestGroups(TestCase):
    """Behavioral tests for mutex and required flag groups."""

    def testMutexRejectsTwo(self):
        app = Command("app")
        app.bool("json", "j")
        app.bool("yaml", "y")
        app.add_mutex_group("format", ["json", "yaml"])
        with self.assertRaises(MutexGroupError):
            app.parse(["-j", "-y"])

    def testMutexAllowsNoneByDefault(self):
        app = Command("app")
        app.bool("json", "j")
        app.bool("yaml", "y")
        app.add_mutex_group("format", ["json", "y"])
        self.assertFalse(app.parse([]))

    def testMutexRequiresOne(self):
        app = Command("app")
        app.bool("json", "j")
        app.bool("yaml", "y")
        app.add_mutex_group("format", ["json", "yaml"], allow_none=False)
        with self.assertRaises(MutexGroupError):
            app.parse([])

    def testRequiredGroup(self):
        app = Command("app")
        app.string("user", "u")
        app.string("password", "P")
        app.add_required_group("credentials", ["user", "password"])
        with self.assertRaises(RequiredGroupError) as context:
            app.parse(["-u", "eve"])
        self.assertIn("--password", str(context.exception))

    def testRequiredGroupSatisfied(self):
        app = Command("app")
        app.string("user", "u")
        app.string("password", "P")
        app.add_required_group("credentials", ["user", "password"])
        self.assertFalse(app.parse(["-u", "eve", "-P", "secret"]))

    def testUnknownMemberRejected(self):
        app = Command("app")
        app.bool("json", "j")
        with self.assertRaises(SetupInvariantError):
            app.add_mutex_group("format", ["json", "xml"])


class TestRouting(TestCase):
    """Behavioral tests for run callbacks and invoke()."""

    def testRoutesToDeepestCommand(self):
        calls = []
        app = Command("app", run=lambda command: calls.append(command.name))
        serve = app.subcommand("serve", run=lambda command: calls.append(command.name))
        serve.subcommand("fast")
        self.assertFalse(app.parse_and_route(["serve", "fast"]))
        self.assertEqual(calls, ["serve"])

    def testFallsBackToRoot(self):
        calls = []
        app = Command("app", run=lambda command: calls.append(command.name))
        app.subcommand("serve")
        app.parse_and_route(["serve"])
        self.assertEqual(calls, ["app"])

    def testBuiltinSkipsCallback(self):
        calls = []
        app = Command("app", run=lambda command: calls.append(command.name))
        result, _ = _quiet(app.parse_and_route, ["--help"])
        self.assertTrue(result)
        self.assertEqual(calls, [])

    def testRoutingIsOneShot(self):
        calls = []
        app = Command("app", run=lambda command: calls.append(command.name))
        self.assertFalse(app.parse_and_route([]))
        self.assertFalse(app.parse_and_route([]))
        self.assertEqual(calls, ["app"])

    def testRunWithoutCallback(self):
        with self.assertRaises(SetupInvariantError):
            Command("app").run()

    def testInvokeExitsOnBuiltin(self):
        app = Command("app")
        with contextlib.redirect_stdout(io.StringIO()), self.assertRaises(SystemExit) as context:
            invoke(app, "--help")
        self.assertEqual(context.exception.code, 0)

    def testInvokeRendersFaults(self):
        app = Command("app")
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr), self.assertRaises(SystemExit) as context:
            invoke(app, ["--bogus"])
        self.assertEqual(context.exception.code, 1)
        self.assertIn("flag provided but not defined: --bogus", stderr.getvalue())

    def testInvokeRunsCallback(self):
        seen = []
        app = Command("app", run=lambda command: seen.append(command.args))
        invoke(app, "'one two' three")
        self.assertEqual(seen, [["one two", "three"]])


class SlowFlag(StringFlag):
    """string flag whose parsing takes a while and counts its calls."""

    def __init__(self, *args, **options):
        super().__init__(*args, **options)
        self.calls = 0

    def parse(self, raw, /):
        self.calls += 1
        time.sleep(0.05)
        return raw


class TestConcurrency(TestCase):
    """Behavioral tests for concurrent parse and accessor calls."""

    def testConcurrentParsesRunOnce(self):
        app = Command("app")
        slow = app.add_flag(SlowFlag("slow", "s"))
        results = []

        def worker(index):
            results.append(app.parse(["--slow", str(index), f"arg{index}"]))

        threads = [threading.Thread(target=worker, args=(index,)) for index in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(results, [False] * 8)
        self.assertEqual(slow.calls, 1)
        self.assertEqual(app.args, [f"arg{slow.get()}"])

    def testOppositeReparentingDoesNotDeadlock(self):
        left, right = Command("left"), Command("right")
        x, y = Command("x"), Command("y")
        left.add_children(x)
        right.add_children(y)

        def shuttle(child, first, second):
            for _ in range(200):
                first.add_children(child)
                second.add_children(child)

        threads = [
            threading.Thread(target=shuttle, args=(x, right, left), daemon=True),
            threading.Thread(target=shuttle, args=(y, left, right), daemon=True),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
            self.assertFalse(thread.is_alive())

        self.assertEqual(left.children, (x,))
        self.assertEqual(right.children, (y,))
        self.assertIs(x.parent, left)
        self.assertIs(y.parent, right)

    def testAccessorsDuringParse(self):
        app = Command("app", version="1.0.0", notes=["note"])
        app.add_flag(SlowFlag("slow", "s"))
        errors = []
        done = threading.Event()

        def reader():
            try:
                while not done.is_set():
                    self.assertEqual(app.name, "app")
                    self.assertEqual(app.version, "1.0.0")
                    self.assertEqual(app.notes, ["note"])
                    self.assertIn(app.args, ([], ["a", "b"]))
            except AssertionError as error:
                errors.append(error)

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for thread in readers:
            thread.start()
        app.parse(["--slow", "x", "a", "b"])
        done.set()
        for thread in readers:
            thread.join()

        self.assertEqual(errors, [])
        self.assertEqual(app.args, ["a", "b"])


if __name__ == "__main__":
    unittest.main()
