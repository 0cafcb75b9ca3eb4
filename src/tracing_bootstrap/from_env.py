"""Typed access to process environment variables.

A variable is described once by an :class:`EnvVar` (name, parser, default,
whether it is optional and whether a malformed value is fatal). Absent and
empty values are treated the same way: the default is returned. A value that
is present but fails to parse either falls back to the default or, for
``strict`` variables, raises :class:`~tracing_bootstrap.errors.ConfigError`.

Configuration types combine several variables through the :class:`FromEnv`
mixin, which also publishes an inventory of the variables they read.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from datetime import timedelta
import os
import re
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import AnyHttpUrl, TypeAdapter

from tracing_bootstrap.errors import ConfigError


T = TypeVar("T")

Environ = Mapping[str, str]

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_HTTP_URL_ADAPTER: TypeAdapter[AnyHttpUrl] = TypeAdapter(AnyHttpUrl)


class FromEnvError(Exception):
    """Base class for low-level lookup failures of a single variable."""

    def __init__(self, var: str, message: str) -> None:
        self.var = var
        super().__init__(message)


class MissingEnvVarError(FromEnvError):
    def __init__(self, var: str) -> None:
        super().__init__(var, f"environment variable {var} is not set")


class EmptyEnvVarError(FromEnvError):
    def __init__(self, var: str) -> None:
        super().__init__(var, f"environment variable {var} is empty")


class EnvParseError(FromEnvError):
    def __init__(self, var: str, value: str, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(var, f"failed to parse environment variable {var}: {reason}")


@dataclass(frozen=True, slots=True)
class EnvItemInfo:
    """Documentation entry for one environment variable."""

    var: str
    description: str
    optional: bool = True


def _environ(environ: Environ | None) -> Environ:
    return os.environ if environ is None else environ


def parse_env_if_present(var: str, parser: Callable[[str], T], environ: Environ | None = None) -> T:
    """Parse ``var`` with ``parser`` if it is set and non-empty.

    Raises:
        MissingEnvVarError: the variable is not set
        EmptyEnvVarError: the variable is set to an empty string
        EnvParseError: ``parser`` rejected the value
    """
    env = _environ(environ)
    try:
        raw = env[var]
    except KeyError:
        raise MissingEnvVarError(var) from None
    if not raw:
        raise EmptyEnvVarError(var)
    try:
        return parser(raw)
    except (ValueError, TypeError, OverflowError) as exc:
        raise EnvParseError(var, raw, str(exc)) from exc


@dataclass(frozen=True, slots=True)
class EnvVar(Generic[T]):
    """Specification of a single environment variable."""

    var: str
    parser: Callable[[str], T]
    description: str
    default: T | None = None
    optional: bool = True
    strict: bool = False

    @property
    def info(self) -> EnvItemInfo:
        return EnvItemInfo(var=self.var, description=self.description, optional=self.optional)

    def is_present(self, environ: Environ | None = None) -> bool:
        return bool(_environ(environ).get(self.var))

    def read(self, environ: Environ | None = None) -> T | None:
        """Read the variable, returning ``default`` when it is absent or empty.

        A malformed value returns ``default`` unless the variable is ``strict``,
        in which case a ``ConfigError`` naming the variable is raised. A
        non-optional variable that is absent also raises ``ConfigError``.
        """
        try:
            return parse_env_if_present(self.var, self.parser, environ)
        except (MissingEnvVarError, EmptyEnvVarError):
            if not self.optional:
                raise ConfigError(self.var, None, "variable is required") from None
            return self.default
        except EnvParseError as exc:
            if self.strict:
                raise ConfigError(self.var, exc.value, exc.reason) from exc
            return self.default


def read(
    var: str,
    parser: Callable[[str], T],
    environ: Environ | None = None,
    *,
    strict: bool = False,
) -> T | None:
    """Read an optional variable; ``None`` when absent, empty or (non-strict) malformed."""
    return EnvVar(var, parser, description="", strict=strict).read(environ)


def read_with_default(
    var: str,
    parser: Callable[[str], T],
    default: T,
    environ: Environ | None = None,
    *,
    strict: bool = False,
) -> T:
    """Read a variable that always resolves to a value."""
    value = EnvVar(var, parser, description="", default=default, strict=strict).read(environ)
    return default if value is None else value


@dataclass(frozen=True, slots=True)
class NestedEnv:
    """A :class:`FromEnv` type embedded in another one.

    Every variable of an ``optional`` member is reported as optional, since
    the embedding type loads without it.
    """

    config_type: type[FromEnv]
    optional: bool = False

    def inventory(self) -> list[EnvItemInfo]:
        items = self.config_type.inventory()
        if self.optional:
            return [replace(info, optional=True) for info in items]
        return items


class FromEnv(ABC):
    """Mixin for configuration types built from environment variables.

    A type reads its own ``ENV_VARS`` and may embed other ``FromEnv`` types
    through ``NESTED``; the inventory covers both, in declaration order.
    """

    ENV_VARS: ClassVar[tuple[EnvVar[Any], ...]] = ()
    NESTED: ClassVar[tuple[NestedEnv, ...]] = ()

    @classmethod
    def inventory(cls) -> list[EnvItemInfo]:
        """All variables read by this type and its nested types, optional ones included."""
        items = [env_var.info for env_var in cls.ENV_VARS]
        seen = {info.var for info in items}
        for nested in cls.NESTED:
            for info in nested.inventory():
                if info.var not in seen:
                    seen.add(info.var)
                    items.append(info)
        return items

    @classmethod
    def check_inventory(cls, environ: Environ | None = None) -> list[EnvItemInfo]:
        """Return the non-optional variables that are missing from the environment."""
        env = _environ(environ)
        return [info for info in cls.inventory() if not info.optional and not env.get(info.var)]

    @classmethod
    @abstractmethod
    def from_env(cls, environ: Environ | None = None) -> Any:
        """Load an instance from ``environ`` (the process environment by default)."""


# Parsers take the raw non-empty string and raise ValueError on bad input.


def parse_str(raw: str) -> str:
    return raw


def parse_flag(raw: str) -> bool:
    """Any non-empty value switches the flag on."""
    return bool(raw)


def _parse_integer(raw: str) -> int:
    if not _INTEGER_RE.fullmatch(raw):
        raise ValueError(f"invalid digit found in {raw!r}")
    return int(raw)


def int_in_range(low: int, high: int) -> Callable[[str], int]:
    """Build a parser accepting integers in ``[low, high]``."""

    def parse(raw: str) -> int:
        value = _parse_integer(raw)
        if not low <= value <= high:
            raise ValueError(f"{value} is outside the range {low}..{high}")
        return value

    return parse


parse_u16 = int_in_range(0, 2**16 - 1)

# A zero timeout makes every export attempt expire before it is sent
_parse_positive_u64 = int_in_range(1, 2**64 - 1)


def parse_millis(raw: str) -> timedelta:
    """Parse a positive number of milliseconds."""
    return timedelta(milliseconds=_parse_positive_u64(raw))


def parse_http_url(raw: str) -> str:
    """Validate an absolute ``http``/``https`` URL and return it unchanged."""
    _HTTP_URL_ADAPTER.validate_python(raw)
    return raw


def parse_headers(raw: str) -> dict[str, str]:
    """Parse ``key=value`` pairs separated by commas."""
    headers: dict[str, str] = {}
    for item in raw.split(","):
        if not item.strip():
            continue
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"expected key=value, got {item!r}")
        headers[key.strip()] = value.strip()
    return headers
