"""Install-if-missing dispatch and quiet wrappers for check/install runs."""

import contextlib
import enum
import functools
import io
import logging
import re
import subprocess
import sys
import warnings
from dataclasses import dataclass, field
from importlib import metadata
from typing import Any, Callable, Optional, Protocol

from recon import ReconcileError

log = logging.getLogger(__name__)

GITHUB_URL = 'git+https://github.com/{repo}.git'

# Output lines that carry no information: blank, or a lone '-' / '|'
_NOISE_RE = re.compile(r'^(\s*|[-|])$')


class UnrecognizedSourceError(ReconcileError, ValueError):
    """Installation source outside the supported set."""


class PackageNotAvailableError(ReconcileError, LookupError):
    """Package does not exist in the default registry."""


class PackageSource(enum.Enum):
    """Where a package is installed from."""

    PYPI = 'PyPI'
    GITHUB = 'GitHub'
    TEST_PYPI = 'TestPyPI'
    PIWHEELS = 'piwheels'

    @classmethod
    def parse(cls, value: 'PackageSource | str') -> 'PackageSource':
        """Accept a member, its name or its label (case-insensitive)."""
        if isinstance(value, cls):
            return value
        wanted = str(value).strip().lower().replace('-', '_')
        for source in cls:
            if wanted in (source.name.lower(), source.value.lower()):
                return source
        valid = ', '.join(s.value for s in cls)
        raise UnrecognizedSourceError(
            f"Unbekannte Quelle {value!r}. Erlaubt: {valid}."
        )


INDEX_URLS: dict[PackageSource, str] = {
    PackageSource.TEST_PYPI: 'https://test.pypi.org/simple/',
    PackageSource.PIWHEELS: 'https://www.piwheels.org/simple/',
}


class PackageResolver(Protocol):
    """Capability to inspect and change the local package set."""

    def is_installed(self, name: str) -> bool: ...

    def is_available(self, name: str) -> bool: ...

    def install(self, target: str, index_url: Optional[str] = None) -> None: ...


class PipResolver:
    """PackageResolver backed by importlib.metadata and ``python -m pip``."""

    def __init__(self, python: str = sys.executable):
        self.python = python

    def is_installed(self, name: str) -> bool:
        try:
            metadata.distribution(name)
        except metadata.PackageNotFoundError:
            return False
        return True

    def is_available(self, name: str) -> bool:
        proc = subprocess.run(
            [self.python, '-m', 'pip', 'index', 'versions', name],
            capture_output=True, text=True,
        )
        return proc.returncode == 0

    def install(self, target: str, index_url: Optional[str] = None) -> None:
        cmd = [self.python, '-m', 'pip', 'install', target]
        if index_url:
            cmd += ['--index-url', index_url]
        log.info("Installiere %s", target)
        subprocess.run(cmd, check=True, capture_output=True, text=True)


@dataclass
class InstallResult:
    """Outcome of install_if_missing()."""

    package: str
    source: PackageSource
    installed: bool   # False if the package was already present
    target: str       # what was (or would have been) handed to the installer


def install_if_missing(
    package: str,
    source: PackageSource | str = PackageSource.PYPI,
    repo: Optional[str] = None,
    resolver: Optional[PackageResolver] = None,
) -> InstallResult:
    """Install a package unless it is already present.

    Args:
        package: Distribution name, or ``user/repo`` for GitHub.
        source: PyPI, GitHub, TestPyPI or piwheels.
        repo: GitHub repository ``user/repo``; defaults to ``package``.
        resolver: Package backend; defaults to PipResolver.

    Returns:
        InstallResult describing what happened.

    Raises:
        UnrecognizedSourceError: If the source is not supported.
        PackageNotAvailableError: If a PyPI package does not exist.
        ValueError: If a GitHub repository is not of the form ``user/repo``.
    """
    source = PackageSource.parse(source)
    resolver = resolver if resolver is not None else PipResolver()

    if source is PackageSource.GITHUB:
        repo = repo or package
        parts = repo.split('/')
        if len(parts) != 2 or not all(parts):
            raise ValueError(f"GitHub-Repository muss 'user/repo' sein, nicht {repo!r}.")
        name = parts[1]
        target = GITHUB_URL.format(repo=repo)
        if resolver.is_installed(name):
            log.info("Paket %s ist bereits installiert.", name)
            return InstallResult(name, source, False, target)
        resolver.install(target)
        return InstallResult(name, source, True, target)

    if source in INDEX_URLS:
        if resolver.is_installed(package):
            log.info("Paket %s ist bereits installiert.", package)
            return InstallResult(package, source, False, package)
        resolver.install(package, index_url=INDEX_URLS[source])
        return InstallResult(package, source, True, package)

    if resolver.is_installed(package):
        log.info("Paket %s ist bereits installiert.", package)
        return InstallResult(package, source, False, package)
    if not resolver.is_available(package):
        raise PackageNotAvailableError(f"Paket {package} ist auf PyPI nicht verfuegbar.")
    resolver.install(package)
    return InstallResult(package, source, True, package)


@dataclass
class QuietResult:
    """Return value of a quietly() wrapped call."""

    result: Any
    output: str = ''
    warnings: list[str] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)


class _CaptureHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(self.format(record))


def quietly(func: Callable[..., Any]) -> Callable[..., QuietResult]:
    """Wrap func so that stdout, warnings and messages are captured, not shown.

    Messages are log records of every level (routed away from the root
    handlers while the call runs) followed by non-empty stderr lines.
    Exceptions propagate.
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> QuietResult:
        out = io.StringIO()
        err = io.StringIO()
        handler = _CaptureHandler()
        root = logging.getLogger()
        saved_handlers = root.handlers[:]
        saved_level = root.level
        root.handlers = [handler]
        # Loggers without an own level inherit DEBUG, so nothing is dropped
        root.setLevel(logging.DEBUG)
        try:
            with warnings.catch_warnings(record=True) as caught, \
                    contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
                warnings.simplefilter('always')
                result = func(*args, **kwargs)
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)
        messages = handler.messages + [line for line in err.getvalue().splitlines() if line]
        return QuietResult(
            result=result,
            output=out.getvalue(),
            warnings=[str(w.message) for w in caught],
            messages=messages,
        )
    return wrapper


def run_command(args: list[str]) -> int:
    """Run a command, echo its output to the current stdout/stderr, return the exit code."""
    proc = subprocess.run(args, capture_output=True, text=True)
    if proc.stdout:
        sys.stdout.write(proc.stdout)
    if proc.stderr:
        sys.stderr.write(proc.stderr)
    return proc.returncode


def check_quietly(
    path: str = '.',
    quiet: bool = True,
    runner: Callable[[list[str]], Any] = run_command,
) -> QuietResult:
    """Run the test suite of the project at path, capturing everything."""
    args = [sys.executable, '-m', 'pytest', path]
    if quiet:
        args.append('-q')
    return quietly(runner)(args)


def install_quietly(
    path: str = '.',
    quiet: bool = True,
    runner: Callable[[list[str]], Any] = run_command,
) -> QuietResult:
    """Install the project at path with pip, capturing everything."""
    args = [sys.executable, '-m', 'pip', 'install', path]
    if quiet:
        args.append('-q')
    return quietly(runner)(args)


def shhh_check(*args: Any, **kwargs: Any) -> Any:
    """check_quietly() reduced to the check's return value."""
    return check_quietly(*args, **kwargs).result


def pretty_install(*args: Any, **kwargs: Any) -> list[str]:
    """install_quietly() reduced to its meaningful output lines plus messages."""
    out = install_quietly(*args, **kwargs)
    lines = [line for line in out.output.split('\n') if not _NOISE_RE.match(line)]
    return lines + out.messages
