"""
Ownership predicate for hook commands.

Decides whether a hook command string in a settings file was installed by
devark. A command is owned when:

    - the command starts with the configured canonical CLI path (or
      invocation, such as ``npx devark-cli``), or
    - the command's executable position names the tool, in any form it has
      been installed with: a direct path (/usr/local/bin/devark), a bare name
      (devark), or a package-style invocation (npx devark-cli, npx
      @devark/cli@latest), with or without trailing flags.

Arguments are never inspected, so ``echo devark`` is not an owned command,
and neither is ``echo /usr/local/bin/devark`` when that is the CLI path.
"""

from __future__ import annotations

import re
import shlex
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

# Names the tool has been installed under
DEFAULT_COMMAND_PATTERNS: tuple[str, ...] = ("devark", "devark-cli", "@devark/cli")

# Package launchers that run the next token as the actual program
_LAUNCHERS = {"npx", "bunx", "pnpx", "node", "bun", "deno"}
# Launchers that take a subcommand before the program (pnpm dlx, npm exec)
_SUBCOMMAND_LAUNCHERS = {
    "pnpm": {"dlx", "exec"},
    "yarn": {"dlx", "exec"},
    "npm": {"exec", "x"},
}

_EXECUTABLE_SUFFIXES = (".js", ".mjs", ".cjs", ".cmd", ".exe", ".ps1")
_VERSION_SUFFIX = re.compile(r"(?<=.)@[^/@]+$")
_ENV_ASSIGNMENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")


@dataclass(frozen=True)
class HookInvocation:
    """
    A hook command split into the program it runs and its arguments.

    Attributes:
        executable: Token in executable position (path, name or package spec)
        launcher: Package launcher in front of it (``npx``), if any
        args: Remaining arguments
    """

    executable: str
    launcher: str | None = None
    args: list[str] = field(default_factory=list)

    @property
    def program(self) -> str:
        """What must exist for the command to run: the launcher, else the executable."""
        return self.launcher or self.executable


def _basename(token: str) -> str:
    return re.split(r"[\\/]", token.rstrip("/\\"))[-1]


def _split(command: str) -> list[str]:
    try:
        return shlex.split(command)
    except ValueError:
        # Unbalanced quotes; fall back to whitespace splitting
        return command.split()


def parse_invocation(command: str) -> HookInvocation | None:
    """
    Locate the executable position of a shell command.

    Skips leading ``VAR=value`` assignments, ``env``, and package launchers
    (with their flags).

    Args:
        command: Hook command string

    Returns:
        HookInvocation, or None for an empty command
    """
    tokens = _skip_env(_split(command))
    i = 0
    if not tokens:
        return None

    launcher: str | None = None
    name = _basename(tokens[i])
    if name in _LAUNCHERS or name in _SUBCOMMAND_LAUNCHERS:
        launcher = tokens[i]
        i += 1
        subcommands = _SUBCOMMAND_LAUNCHERS.get(name, set())
        while i < len(tokens) and (tokens[i].startswith("-") or tokens[i] in subcommands):
            i += 1
        if i >= len(tokens):
            # Bare launcher, nothing launched
            return HookInvocation(executable=launcher)

    return HookInvocation(executable=tokens[i], launcher=launcher, args=tokens[i + 1 :])


def _skip_env(tokens: list[str]) -> list[str]:
    i = 0
    while i < len(tokens) and (_ENV_ASSIGNMENT.match(tokens[i]) or tokens[i] == "env"):
        i += 1
    return tokens[i:]


def invokes_cli_path(command: str, cli_path: str) -> bool:
    """
    Check whether ``command`` runs ``cli_path`` in executable position.

    ``cli_path`` is either a single program path (possibly containing spaces)
    or a multi-word invocation such as ``npx devark-cli``. The command's
    leading tokens must equal it exactly; a path that only starts with
    ``cli_path`` (``/usr/local/bin/devark-backup``) does not match.

    Args:
        command: Hook command string
        cli_path: Canonical CLI path or invocation

    Returns:
        True if the command runs the configured CLI
    """
    tokens = _skip_env(_split(command))
    if not tokens or not cli_path.strip():
        return False
    if tokens[0] == cli_path:
        return True
    expected = _split(cli_path)
    return bool(expected) and tokens[: len(expected)] == expected


def _name_variants(token: str) -> Iterator[str]:
    for candidate in (token, _basename(token)):
        yield candidate
        unversioned = _VERSION_SUFFIX.sub("", candidate)
        yield unversioned
        for suffix in _EXECUTABLE_SUFFIXES:
            if unversioned.endswith(suffix):
                yield unversioned[: -len(suffix)]


class HookPredicate:
    """
    Identifies hook commands that belong to devark.

    Example:
        >>> predicate = HookPredicate(cli_path="/usr/local/bin/devark")
        >>> predicate.owns("/usr/local/bin/devark send --hook-trigger=precompact")
        True
        >>> predicate.owns('echo "devark"')
        False
    """

    def __init__(
        self,
        patterns: Iterable[str] = DEFAULT_COMMAND_PATTERNS,
        cli_path: str | None = None,
    ) -> None:
        """
        Initialize the predicate.

        Args:
            patterns: Tool names recognized in executable position
            cli_path: Canonical CLI path or invocation currently configured
        """
        self.patterns = frozenset(p for p in patterns if p)
        self.cli_path = cli_path or None

    def owns(self, command: object) -> bool:
        """
        Check whether a hook command was installed by devark.

        Args:
            command: Value of a hook entry's ``command`` field

        Returns:
            True only for commands that run devark
        """
        if not isinstance(command, str) or not command.strip():
            return False

        if self.cli_path and invokes_cli_path(command, self.cli_path):
            return True

        invocation = parse_invocation(command)
        if invocation is None:
            return False

        return any(name in self.patterns for name in _name_variants(invocation.executable))

    def __call__(self, command: object) -> bool:
        return self.owns(command)
