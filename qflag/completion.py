r"""
Shell completion generator.

What this module provides
- build(root): flatten a command tree into a CompletionModel
  • tree: route ("/", "/serve/", "/serve/s/" ...) -> sorted completion words
    (flag names with dashes plus child long/short names).
  • params: one FlagParam per (route, flag name) with its requirement
    ("required" when the flag consumes a value, "none" otherwise), its
    coarse value kind and, for enum flags, the literal options.
- generate(root, shell, program): render the model as a self-contained bash
  or powershell script. The script never calls back into the program.

Both renderings
- walk the typed words to find the deepest route, skipping the value token
  after a flag that requires one;
- complete by value kind: files for path, 1..10 for number, literal options
  (case-insensitive prefix) for enum, scheme prefixes for url, common
  prefixes for ip;
- otherwise offer the route's word set.

Output is byte-stable for an unchanged tree: every table is sorted before it
is written.
"""
import logging as logmod
import os.path
import re
import shlex
import sys
from collections import namedtuple
from enum import StrEnum

from .faults import SetupInvariantError
from .flags import FlagKind
from .utils import Unset, coalesce

logging = logmod.getLogger(__name__)


class Shell(StrEnum):
    NONE = "none"
    BASH = "bash"
    POWERSHELL = "powershell"
    PWSH = "pwsh"


SHELLS = tuple(shell.value for shell in Shell)


class ValueKind(StrEnum):
    STRING = "string"
    BOOL = "bool"
    NUMBER = "number"
    PATH = "path"
    IP = "ip"
    URL = "url"
    ENUM = "enum"


FlagParam = namedtuple("FlagParam", ("route", "name", "requirement", "valuekind", "options"))
CompletionModel = namedtuple("CompletionModel", ("tree", "params"))


def valuekind(flag, /):
    """coarse completion value kind of a flag, by its FlagKind."""
    match flag.kind:
        case FlagKind.BOOL:
            return ValueKind.BOOL
        case FlagKind.INT | FlagKind.INT64 | FlagKind.UINT16 | FlagKind.UINT32 | FlagKind.UINT64 | FlagKind.FLOAT64:
            return ValueKind.NUMBER
        case FlagKind.PATH:
            return ValueKind.PATH
        case FlagKind.ENUM:
            return ValueKind.ENUM
        case FlagKind.IP4 | FlagKind.IP6:
            return ValueKind.IP
        case FlagKind.URL:
            return ValueKind.URL
        case (
            FlagKind.STRING | FlagKind.DURATION | FlagKind.TIME | FlagKind.MAP | FlagKind.SIZE |
            FlagKind.STRING_SLICE | FlagKind.INT_SLICE | FlagKind.INT64_SLICE
        ):
            return ValueKind.STRING
    raise TypeError(f"valuekind() unsupported flag kind {flag.kind!r}")


def build(root, /):
    """
    flatten the tree under root into a CompletionModel (pre-order, sorted).
    """
    tree = {}
    params = []

    def visit(command, route):
        words = set()
        for flag in command.effective_flags():
            names = [name for name in ("--" + flag.long if flag.long else "", "-" + flag.short if flag.short else "") if name]
            words.update(names)
            kind = valuekind(flag)
            options = flag.options if flag.kind is FlagKind.ENUM else ()
            for name in names:
                params.append(FlagParam(route, name, "required" if flag.requires_value else "none", kind, options))
        children = sorted(command.children, key=lambda child: child.name)
        for child in children:
            words.update(filter(None, (child.long, child.short)))
        tree[route] = tuple(sorted(words))
        for child in children:
            for alias in sorted(filter(None, {child.long, child.short})):
                visit(child, f"{route}{alias}/")

    visit(root, "/")
    return CompletionModel(dict(sorted(tree.items())), tuple(sorted(params)))


def _program(root):
    main = __import__("__main__")
    return getattr(main, "__prog__", None) or os.path.basename(sys.argv[0]) or root.name


def _identifier(program):
    return "_" + re.sub(r"\W", "_", program)


def _dquote(text):
    return '"%s"' % re.sub(r'([\\"$`])', r"\\\1", text)


def _ansi(text):
    return "$'%s'" % text.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n").replace("\t", "\\t")


def _squote(text):
    return "'%s'" % text.replace("'", "''")


_BASH = r"""#!/usr/bin/env bash
# bash completion for @PROG@ (generated, do not edit)

declare -gA @ID@_cmd_tree=()
@TREE@
declare -gA @ID@_flag_params=()
@PARAMS@
declare -gA @ID@_enum_options=()
@ENUMS@
@ID@_complete() {
    local cur prev context i arg key info kind option lower
    local -a opts
    COMPREPLY=()
    cur="${COMP_WORDS[COMP_CWORD]}"
    prev=""
    context="/"

    for ((i = 1; i < COMP_CWORD; i++)); do
        arg="${COMP_WORDS[i]}"
        if [[ "$arg" == -* ]]; then
            info="${@ID@_flag_params["$context|${arg%%=*}"]}"
            if [[ "$arg" != *=* && "${info%%|*}" == "required" ]]; then
                if ((i == COMP_CWORD - 1)); then
                    prev="$arg"
                fi
                ((i++))
            fi
            continue
        fi
        if [[ -n "${@ID@_cmd_tree["$context$arg/"]+set}" ]]; then
            context="$context$arg/"
        fi
    done

    if [[ -n "$prev" ]]; then
        key="$context|$prev"
        info="${@ID@_flag_params["$key"]}"
        kind="${info#*|}"
        case "$kind" in
            path)
                COMPREPLY=($(compgen -f -- "$cur"))
                return 0
                ;;
            number)
                COMPREPLY=($(compgen -W "1 2 3 4 5 6 7 8 9 10" -- "$cur"))
                return 0
                ;;
            ip)
                COMPREPLY=($(compgen -W "127.0.0.1 10.0. 172.16. 192.168. ::1" -- "$cur"))
                return 0
                ;;
            url)
                COMPREPLY=($(compgen -W "http:// https:// ftp://" -- "$cur"))
                return 0
                ;;
            enum)
                lower="${cur,,}"
                while IFS= read -r option; do
                    if [[ -n "$option" && "${option,,}" == "$lower"* ]]; then
                        COMPREPLY+=("$option")
                    fi
                done <<< "${@ID@_enum_options["$key"]}"
                return 0
                ;;
        esac
    fi

    IFS='|' read -r -a opts <<< "${@ID@_cmd_tree["$context"]}"
    if [[ "$cur" == -* ]]; then
        COMPREPLY=($(compgen -W "${opts[*]}" -- "$cur"))
    else
        COMPREPLY=($(compgen -W "${opts[*]}" -f -- "$cur"))
    fi
    return 0
}

complete -F @ID@_complete @CMD@
"""


_POWERSHELL = r"""# powershell completion for @PROG@ (generated, do not edit)

$@ID@CmdTree = [System.Collections.Generic.Dictionary[string, string[]]]::new([System.StringComparer]::Ordinal)
@TREE@
$@ID@FlagParams = [System.Collections.Generic.Dictionary[string, string[]]]::new([System.StringComparer]::Ordinal)
@PARAMS@
$@ID@EnumOptions = [System.Collections.Generic.Dictionary[string, string[]]]::new([System.StringComparer]::Ordinal)
@ENUMS@
Register-ArgumentCompleter -Native -CommandName @CMD@ -ScriptBlock ({
    param($wordToComplete, $commandAst, $cursorPosition)

    $tree = $@ID@CmdTree
    $params = $@ID@FlagParams
    $enums = $@ID@EnumOptions

    $words = @($commandAst.CommandElements | Select-Object -Skip 1 | ForEach-Object { $_.ToString() })
    if ($wordToComplete -and $words.Count -gt 0 -and $words[-1] -eq $wordToComplete) {
        $words = @($words | Select-Object -SkipLast 1)
    }

    $context = '/'
    $prev = $null
    for ($i = 0; $i -lt $words.Count; $i++) {
        $arg = $words[$i]
        if ($arg.StartsWith('-')) {
            $name = $arg.Split('=')[0]
            $info = $null
            if (-not $arg.Contains('=') -and $params.TryGetValue("$context|$name", [ref]$info) -and $info[0] -eq 'required') {
                if ($i -eq $words.Count - 1) {
                    $prev = $name
                }
                $i++
            }
            continue
        }
        if ($tree.ContainsKey("$context$arg/")) {
            $context = "$context$arg/"
        }
    }

    $special = $false
    $completions = @()
    if ($prev) {
        $key = "$context|$prev"
        $special = $true
        switch ($params[$key][1]) {
            'path' {
                $completions = @(Get-ChildItem -Path "$wordToComplete*" -ErrorAction SilentlyContinue | ForEach-Object { $_.Name })
            }
            'number' {
                $completions = @(1..10 | ForEach-Object { "$_" } | Where-Object { $_ -like "$wordToComplete*" })
            }
            'ip' {
                $completions = @('127.0.0.1', '10.0.', '172.16.', '192.168.', '::1') | Where-Object { $_ -like "$wordToComplete*" }
            }
            'url' {
                $completions = @('http://', 'https://', 'ftp://') | Where-Object { $_ -like "$wordToComplete*" }
            }
            'enum' {
                $options = $null
                if ($enums.TryGetValue($key, [ref]$options)) {
                    $completions = @($options | Where-Object { $_ -like "$wordToComplete*" })
                }
            }
            default {
                $special = $false
            }
        }
    }

    if (-not $special) {
        $completions = @($tree[$context] | Where-Object { $_ -like "$wordToComplete*" })
        if (-not $wordToComplete.StartsWith('-')) {
            $files = @(Get-ChildItem -Path "$wordToComplete*" -ErrorAction SilentlyContinue | ForEach-Object { $_.Name })
            $completions = @($completions + $files | Select-Object -Unique)
        }
    }

    $completions | ForEach-Object {
        [System.Management.Automation.CompletionResult]::new($_, $_, 'ParameterValue', $_)
    }
}.GetNewClosure())
"""


def _render_bash(model, program):
    ident = _identifier(program)
    tree = "\n".join(
        f"{ident}_cmd_tree[{_dquote(route)}]={_dquote('|'.join(words))}" for route, words in model.tree.items()
    )
    params = "\n".join(
        f"{ident}_flag_params[{_dquote(f'{param.route}|{param.name}')}]={_dquote(f'{param.requirement}|{param.valuekind}')}"
        for param in model.params
    )
    enums = "\n".join(
        f"{ident}_enum_options[{_dquote(f'{param.route}|{param.name}')}]={_ansi(chr(10).join(param.options))}"
        for param in model.params if param.valuekind is ValueKind.ENUM and param.options
    )
    return (
        _BASH
        .replace("@TREE@", tree)
        .replace("@PARAMS@", params)
        .replace("@ENUMS@", enums)
        .replace("@ID@", ident)
        .replace("@CMD@", shlex.quote(program))
        .replace("@PROG@", program)
    )


def _render_powershell(model, program):
    ident = _identifier(program)
    tree = "\n".join(
        f"${ident}CmdTree[{_squote(route)}] = @({', '.join(map(_squote, words))})" for route, words in model.tree.items()
    )
    params = "\n".join(
        f"${ident}FlagParams[{_squote(f'{param.route}|{param.name}')}] = @({_squote(param.requirement)}, {_squote(param.valuekind)})"
        for param in model.params
    )
    enums = "\n".join(
        f"${ident}EnumOptions[{_squote(f'{param.route}|{param.name}')}] = @({', '.join(map(_squote, param.options))})"
        for param in model.params if param.valuekind is ValueKind.ENUM and param.options
    )
    return (
        _POWERSHELL
        .replace("@TREE@", tree)
        .replace("@PARAMS@", params)
        .replace("@ENUMS@", enums)
        .replace("@ID@", ident)
        .replace("@CMD@", _squote(program))
        .replace("@PROG@", program)
    )


def generate(root, shell, /, program=Unset):
    """
    render a completion script for root's tree.

    parameters
    - root: the root Command (a node with a parent is rejected).
    - shell: one of SHELLS; "none" yields an empty string.
    - program: command name the shell completes; defaults to __main__.__prog__,
      then basename(sys.argv[0]), then the root name.

    raises
    - SetupInvariantError: root is not a root command.
    - ValueError: unsupported shell.
    """
    if root.parent is not None:
        raise SetupInvariantError("invalid command state: not a root command", tool=root)
    try:
        shell = Shell(shell)
    except ValueError:
        raise ValueError(f"unsupported shell {shell!r}, options are [{', '.join(SHELLS)}]") from None
    if shell is Shell.NONE:
        return ""
    program = coalesce(program, _program(root))
    if not isinstance(program, str) or not program.strip():
        raise ValueError("generate() 'program' must be a non-empty string")
    model = build(root)
    logging.debug("generating %s completion for %r (%d routes)", shell, program, len(model.tree))
    match shell:
        case Shell.BASH:
            return _render_bash(model, program)
        case Shell.POWERSHELL | Shell.PWSH:
            return _render_powershell(model, program)
    raise RuntimeError("unreachable")


__all__ = (
    "Shell",
    "SHELLS",
    "ValueKind",
    "FlagParam",
    "CompletionModel",
    "valuekind",
    "build",
    "generate",
)
