"""Built-in JSON exporter.

Purpose
-------
Implement :class:`~cvtsudoers.application.ports.Exporter` for
:attr:`~cvtsudoers.domain.model.OutputFormat.JSON` so the converter works
without an external exporter plugin. The conversion is line oriented and
covers the constructs found in ordinary sudoers files: ``Defaults`` entries,
the four alias kinds, user specifications, and include directives.

Contents
--------
* :class:`PolicyConverter` – turns sudoers text into a JSON-ready dictionary,
  validating ``Defaults`` against the execution context's
  :class:`~cvtsudoers.domain.model.PolicyDefaults`.
* :class:`JSONExporter` – reads the input, converts it, and writes the
  document only after the whole file converted cleanly.
* :func:`logical_lines` / :func:`split_top_level` – lexical helpers.

System Role
-----------
Registered by :mod:`cvtsudoers.core` as the exporter for ``json``. Parse and
I/O errors are reported on stderr as ``cvtsudoers: <file>:<line>: <message>``
and turn into a ``False`` return value.
"""

from __future__ import annotations

import json
import re
from typing import Any, Final, Iterator

import click

from ...domain.errors import ConversionFailure
from ...domain.model import STDIO_SENTINEL, DefaultOption, ExecutionContext, PolicyDefaults
from ...observability import log_debug, log_error, make_event

PROG_NAME: Final[str] = "cvtsudoers"

_INCLUDE_RE: Final[re.Pattern[str]] = re.compile(r"^[#@](include(?:dir)?)\s+(.+)$")
_DEFAULTS_RE: Final[re.Pattern[str]] = re.compile(r"^Defaults(?:([@:!>])(\S+))?(?:\s+(.*))?$")
_DEFAULTS_KEYWORD_RE: Final[re.Pattern[str]] = re.compile(r"^Defaults(?:[@:!>]|$)")
_OPTION_RE: Final[re.Pattern[str]] = re.compile(r"^(!*)\s*([A-Za-z_][A-Za-z0-9_]*)\s*(?:([+-]?=)\s*(.*))?$")
_ALIAS_NAME_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Z][A-Z0-9_]*$")
_TAG_RE: Final[re.Pattern[str]] = re.compile(r"^([A-Z_]+)\s*:\s*")
_HOST_ITEM: Final[str] = r"!*\s*[\w.+\-/*\[\]]+"
_HOST_SPEC_RE: Final[re.Pattern[str]] = re.compile(rf"^\s*({_HOST_ITEM}(?:\s*,\s*{_HOST_ITEM})*)\s*=(.*)$", re.DOTALL)
_NETWORK_RE: Final[re.Pattern[str]] = re.compile(r"^(?:[0-9]{1,3}(?:\.[0-9]{1,3}){3}(?:/[0-9.]+)?|[0-9A-Fa-f]*:[0-9A-Fa-f:]*(?:/[0-9]+)?)$")
_UNESCAPE_RE: Final[re.Pattern[str]] = re.compile(r"\\([\\,:=\s\"])")

_ALIAS_SECTIONS: Final[dict[str, tuple[str, str]]] = {
    "User_Alias": ("User_Aliases", "user"),
    "Runas_Alias": ("Runas_Aliases", "runasuser"),
    "Host_Alias": ("Host_Aliases", "host"),
    "Cmnd_Alias": ("Command_Aliases", "command"),
    "Cmd_Alias": ("Command_Aliases", "command"),
}

_BINDING_KINDS: Final[dict[str, str]] = {"@": "host", ":": "user", ">": "runasuser", "!": "command"}

_LIST_OPERATIONS: Final[dict[str, str]] = {"=": "list_assign", "+=": "list_add", "-=": "list_remove"}

_TAGS: Final[dict[str, tuple[str, bool]]] = {
    "NOPASSWD": ("authenticate", False),
    "PASSWD": ("authenticate", True),
    "NOEXEC": ("noexec", True),
    "EXEC": ("noexec", False),
    "SETENV": ("setenv", True),
    "NOSETENV": ("setenv", False),
    "LOG_INPUT": ("log_input", True),
    "NOLOG_INPUT": ("log_input", False),
    "LOG_OUTPUT": ("log_output", True),
    "NOLOG_OUTPUT": ("log_output", False),
    "MAIL": ("send_mail", True),
    "NOMAIL": ("send_mail", False),
    "FOLLOW": ("sudoedit_follow", True),
    "NOFOLLOW": ("sudoedit_follow", False),
}

_SECTION_ORDER: Final[tuple[str, ...]] = (
    "Defaults",
    "User_Aliases",
    "Runas_Aliases",
    "Host_Aliases",
    "Command_Aliases",
    "User_Specs",
    "Includes",
)


def logical_lines(text: str) -> Iterator[tuple[int, str]]:
    """Yield ``(first_line_number, text)`` with backslash continuations joined.

    Continued fragments are stripped and joined with a single space.
    """

    buffer: list[str] = []
    start = 0
    for lineno, raw in enumerate(text.splitlines(), start=1):
        if not buffer:
            start = lineno
        line = raw.rstrip()
        if line.endswith("\\") and not line.endswith("\\\\"):
            buffer.append(line[:-1].strip())
            continue
        buffer.append(line.strip())
        yield start, " ".join(part for part in buffer if part)
        buffer = []
    if buffer:
        yield start, " ".join(part for part in buffer if part)


def strip_comment(line: str) -> str:
    """Drop a trailing ``#`` comment; ``#`` followed by a digit is a numeric id.

    Examples
    --------
    >>> strip_comment("%#100 ALL = ALL  # admins")
    '%#100 ALL = ALL'
    """

    quoted = False
    escaped = False
    for index, char in enumerate(line):
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            quoted = not quoted
        elif char == "#" and not quoted and not line[index + 1 : index + 2].isdigit():
            return line[:index].rstrip()
    return line.rstrip()


def split_top_level(text: str, separator: str) -> list[str]:
    """Split *text* on *separator* outside quotes, parentheses, and escapes.

    Examples
    --------
    >>> split_top_level("(root : wheel) /bin/ls, /bin/cat", ",")
    ['(root : wheel) /bin/ls', '/bin/cat']
    """

    parts: list[str] = []
    current: list[str] = []
    depth = 0
    quoted = False
    escaped = False
    for char in text:
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            quoted = not quoted
        elif not quoted and char == "(":
            depth += 1
        elif not quoted and char == ")":
            depth = max(depth - 1, 0)
        elif not quoted and depth == 0 and char == separator:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    parts.append("".join(current).strip())
    return parts


def _unescape(text: str) -> str:
    return _UNESCAPE_RE.sub(r"\1", text)


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] == '"':
        text = text[1:-1]
    return _unescape(text)


def _classify(text: str, kind: str) -> dict[str, Any]:
    """Map one member token to its JSON object for the given member *kind*."""

    if kind == "command":
        if text != "ALL" and _ALIAS_NAME_RE.match(text):
            return {"cmndalias": text}
        return {"command": _unescape(text)}
    if kind == "host":
        if text.startswith("+"):
            return {"netgroup": text[1:]}
        if _NETWORK_RE.match(text):
            return {"networkaddr": text}
        if text != "ALL" and _ALIAS_NAME_RE.match(text):
            return {"hostalias": text}
        return {"hostname": text}
    if kind == "runasgroup":
        if text.startswith("#") and text[1:].isdigit():
            return {"groupid": int(text[1:])}
        if text != "ALL" and _ALIAS_NAME_RE.match(text):
            return {"runasalias": text}
        return {"groupname": _unquote(text)}
    # user and runasuser share the same token forms
    if text.startswith("%:"):
        return {"nonunixgroup": text[2:]}
    if text.startswith("%#") and text[2:].isdigit():
        return {"usergid": int(text[2:])}
    if text.startswith("%"):
        return {"usergroup": _unquote(text[1:])}
    if text.startswith("+"):
        return {"netgroup": text[1:]}
    if text.startswith("#") and text[1:].isdigit():
        return {"userid": int(text[1:])}
    if text != "ALL" and _ALIAS_NAME_RE.match(text):
        return {"runasalias" if kind == "runasuser" else "useralias": text}
    return {"username": _unquote(text)}


def _member(text: str, kind: str, lineno: int) -> dict[str, Any]:
    negated = False
    text = text.strip()
    while text.startswith("!"):
        negated = not negated
        text = text[1:].lstrip()
    if not text:
        raise ConversionFailure("syntax error: empty list member", lineno=lineno)
    entry = _classify(text, kind)
    if negated:
        entry["negated"] = True
    return entry


def _members(text: str, kind: str, lineno: int) -> list[dict[str, Any]]:
    return [_member(item, kind, lineno) for item in split_top_level(text, ",")]


class PolicyConverter:
    """Convert sudoers text into a JSON-ready dictionary.

    Examples
    --------
    >>> from cvtsudoers.domain.model import DefaultOption, PolicyDefaults
    >>> table = PolicyDefaults({"env_reset": DefaultOption("env_reset", "flag", True)})
    >>> PolicyConverter(table).convert("Defaults !env_reset")
    {'Defaults': [{'Options': [{'env_reset': False}]}]}
    """

    def __init__(self, defaults: PolicyDefaults) -> None:
        self._defaults = defaults

    def convert(self, text: str) -> dict[str, Any]:
        sections: dict[str, Any] = {
            "Defaults": [],
            "User_Aliases": {},
            "Runas_Aliases": {},
            "Host_Aliases": {},
            "Command_Aliases": {},
            "User_Specs": [],
            "Includes": [],
        }
        for lineno, raw in logical_lines(text):
            include = _INCLUDE_RE.match(raw)
            if include:
                sections["Includes"].append({include.group(1): include.group(2).strip()})
                continue
            line = strip_comment(raw)
            if not line:
                continue
            keyword = line.split(None, 1)[0]
            if _DEFAULTS_KEYWORD_RE.match(keyword):
                sections["Defaults"].append(self._defaults_entry(line, lineno))
            elif keyword in _ALIAS_SECTIONS:
                section, kind = _ALIAS_SECTIONS[keyword]
                self._aliases(line[len(keyword) :], kind, sections[section], lineno)
            else:
                sections["User_Specs"].append(self._user_spec(line, lineno))
        return {name: sections[name] for name in _SECTION_ORDER if sections[name]}

    def _defaults_entry(self, line: str, lineno: int) -> dict[str, Any]:
        match = _DEFAULTS_RE.match(line)
        if match is None or not (match.group(3) or "").strip():
            raise ConversionFailure("syntax error in Defaults entry", lineno=lineno)
        binding_type, binding, options = match.groups()
        entry: dict[str, Any] = {}
        if binding_type:
            entry["Binding"] = _members(binding, _BINDING_KINDS[binding_type], lineno)
        entry["Options"] = [self._option(item, lineno) for item in split_top_level(options, ",")]
        return entry

    def _option(self, text: str, lineno: int) -> dict[str, Any]:
        match = _OPTION_RE.match(text)
        if match is None:
            raise ConversionFailure(f'invalid Defaults entry "{text}"', lineno=lineno)
        bangs, name, operator, raw = match.groups()
        option = self._defaults.get(name)
        if option is None:
            raise ConversionFailure(f'unknown defaults entry "{name}"', lineno=lineno)
        negated = len(bangs) % 2 == 1
        if operator is None:
            if option.kind == "flag":
                return {name: not negated}
            if negated:
                return {name: False}
            raise ConversionFailure(f'no value specified for "{name}"', lineno=lineno)
        if negated or option.kind == "flag":
            raise ConversionFailure(f'option "{name}" does not take a value', lineno=lineno)
        value = _unquote(raw)
        if option.kind == "list":
            return {name: {"operation": _LIST_OPERATIONS[operator], "value": value.split()}}
        if operator != "=":
            raise ConversionFailure(f'"{name}" is not a list', lineno=lineno)
        return {name: self._typed(option, value, lineno)}

    @staticmethod
    def _typed(option: DefaultOption, value: str, lineno: int) -> Any:
        try:
            if option.kind == "integer":
                return int(value)
            if option.kind == "float":
                return float(value)
            if option.kind == "mode":
                mode = int(value, 8)
                if not 0 <= mode <= 0o777:
                    raise ValueError(value)
                return mode
        except ValueError as exc:
            raise ConversionFailure(f'value "{value}" is invalid for option "{option.name}"', lineno=lineno) from exc
        if option.kind == "tuple" and value not in option.choices:
            raise ConversionFailure(f'value "{value}" is invalid for option "{option.name}"', lineno=lineno)
        return value

    def _aliases(self, text: str, kind: str, target: dict[str, Any], lineno: int) -> None:
        for definition in split_top_level(text, ":"):
            name, sep, members = (part.strip() for part in definition.partition("="))
            if not sep or not _ALIAS_NAME_RE.match(name) or name == "ALL" or not members:
                raise ConversionFailure("syntax error in alias definition", lineno=lineno)
            if name in target:
                raise ConversionFailure(f'duplicate alias "{name}"', lineno=lineno)
            target[name] = _members(members, kind, lineno)

    def _user_spec(self, line: str, lineno: int) -> dict[str, Any]:
        head, sep, tail = line.partition("=")
        head = re.sub(r"\s*,\s*", ",", head.strip())
        lists = head.split(None, 1)
        if not sep or len(lists) != 2:
            raise ConversionFailure("syntax error", lineno=lineno)
        users, first_hosts = lists

        host_specs: list[tuple[str, list[str]]] = [(first_hosts, [])]
        for piece in split_top_level(tail, ":"):
            spec = _HOST_SPEC_RE.match(piece)
            if spec and host_specs[-1][1]:
                host_specs.append((spec.group(1), [spec.group(2)]))
            else:
                host_specs[-1][1].append(piece)

        privileges = []
        for hosts, pieces in host_specs:
            commands = ":".join(pieces).strip()
            if not commands:
                raise ConversionFailure("syntax error: missing command list", lineno=lineno)
            privileges.append((_members(hosts, "host", lineno), self._cmnd_specs(commands, lineno)))

        spec: dict[str, Any] = {"User_List": _members(users, "user", lineno)}
        if len(privileges) == 1:
            spec["Host_List"], spec["Cmnd_Specs"] = privileges[0]
        else:
            spec["Privileges"] = [{"Host_List": hosts, "Cmnd_Specs": cmnds} for hosts, cmnds in privileges]
        return spec

    def _cmnd_specs(self, text: str, lineno: int) -> list[dict[str, Any]]:
        runas: dict[str, Any] = {}
        tags: dict[str, bool] = {}
        specs = []
        for item in split_top_level(text, ","):
            rest = item
            if rest.startswith("("):
                close = rest.find(")")
                if close == -1:
                    raise ConversionFailure("syntax error: unterminated runas list", lineno=lineno)
                runas = self._runas(rest[1:close], lineno)
                rest = rest[close + 1 :].lstrip()
            while True:
                tag = _TAG_RE.match(rest)
                if tag is None or tag.group(1) not in _TAGS:
                    break
                option, enabled = _TAGS[tag.group(1)]
                tags[option] = enabled
                rest = rest[tag.end() :]
            if not rest:
                raise ConversionFailure("syntax error: missing command", lineno=lineno)
            spec: dict[str, Any] = dict(runas)
            if tags:
                spec["Options"] = [{option: enabled} for option, enabled in tags.items()]
            spec["Commands"] = [_member(rest, "command", lineno)]
            specs.append(spec)
        return specs

    @staticmethod
    def _runas(text: str, lineno: int) -> dict[str, Any]:
        users, sep, groups = text.partition(":")
        runas: dict[str, Any] = {}
        if users.strip():
            runas["runasusers"] = _members(users, "runasuser", lineno)
        if sep and groups.strip():
            runas["runasgroups"] = _members(groups, "runasgroup", lineno)
        return runas


class JSONExporter:
    """Write the converted policy as a JSON document."""

    def __init__(self, *, indent: int = 4) -> None:
        self._indent = indent

    def export(self, input_path: str, output_path: str, context: ExecutionContext) -> bool:
        label = "stdin" if input_path == STDIO_SENTINEL else input_path
        log_debug(
            "export_started",
            **make_event("export", {"input": label, "user": context.identity.name, "host": context.host.short_host}),
        )
        try:
            with click.open_file(input_path, "r", encoding="utf-8") as stream:
                text = stream.read()
        except (OSError, UnicodeDecodeError) as exc:
            return _report(f"unable to read {label}: {_describe(exc)}")

        try:
            document = PolicyConverter(context.defaults).convert(text)
        except ConversionFailure as exc:
            where = f"{label}:{exc.lineno}" if exc.lineno is not None else label
            return _report(f"{where}: {exc}")

        rendered = json.dumps(document, indent=self._indent) + "\n"
        try:
            with click.open_file(
                output_path, "w", encoding="utf-8", atomic=output_path != STDIO_SENTINEL
            ) as out:
                out.write(rendered)
        except OSError as exc:
            target = "stdout" if output_path == STDIO_SENTINEL else output_path
            return _report(f"unable to write {target}: {_describe(exc)}")
        log_debug("export_written", **make_event("export", {"sections": sorted(document)}))
        return True


def _describe(exc: BaseException) -> str:
    return getattr(exc, "strerror", None) or str(exc)


def _report(message: str) -> bool:
    log_error("conversion_failed", **make_event("export", {"reason": message}))
    click.echo(f"{PROG_NAME}: {message}", err=True)
    return False
