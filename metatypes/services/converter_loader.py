"""Lazy Converter Loader — resolve an externally supplied conversion function at most once.

Invariants:
    - func moves at most once from None to a callable or BROKEN_FUNC, and never reverts
    - The loader is invoked at most once per ConverterState, however many callers race
    - The first caller to see "not attempted" claims the attempt under a lock before awaiting
    - Every other caller receives the same outcome (resolved callable or BROKEN_FUNC)
    - A failing loader is logged, never re-raised; the state is then permanently broken
    - A malformed loader result raises ConverterFormatError to the claiming caller only
    - The claim always settles: a leader interrupted by any BaseException settles BROKEN_FUNC
    - A cancelled follower leaves the shared outcome untouched for every other caller

Design Decisions:
    - Lock-guarded check-and-set over relying on cooperative scheduling: the claim stays
      atomic when several threads drive their own event loops
    - concurrent.futures.Future as the in-flight entry: awaitable from any loop via wrap_future
    - Followers await through asyncio.shield so their cancellation never reaches the entry
    - No retries, no timeout: a fresh ConverterState is the retry; timeouts belong to the loader
"""

import asyncio
import importlib
import inspect
import logging
import threading
from concurrent.futures import Future
from typing import Any, Awaitable, Callable, Mapping, Union

from metatypes.config import get_settings
from metatypes.core.descriptor import Meta
from metatypes.core.errors import ConverterFormatError, ConverterLoadError

logger = logging.getLogger(__name__)

ConverterFunc = Callable[..., Any]
FuncLoader = Callable[[Any], Union[Awaitable[Any], Any]]


def BROKEN_FUNC(*args: Any, **kwargs: Any) -> None:
    """Stand-in used after the converter failed to load."""
    logger.error("Converter stub called: the converter function failed to load")
    return None


def _loader_name(loader: Any) -> str:
    name = getattr(loader, "module_path", None)
    if isinstance(name, str) and name:
        return name
    module = getattr(loader, "__module__", None) or "?"
    qualname = getattr(loader, "__qualname__", None) or type(loader).__qualname__
    return f"{module}.{qualname}"


def import_loader(path: str) -> FuncLoader:
    """Loader for "package.module" or "package.module:attr".

    A bare module path resolves to the module itself, whose `default` attribute
    must then be the converter.
    """
    module_name, _, attribute = path.partition(":")

    def resolve() -> Any:
        module = importlib.import_module(module_name)
        return getattr(module, attribute) if attribute else module

    async def load_module(value: Any = None) -> Any:
        if get_settings().converter_import_in_thread:
            return await asyncio.to_thread(resolve)
        return resolve()

    load_module.module_path = path
    return load_module


def _unwrap(result: Any) -> ConverterFunc:
    """Accept a callable, or a container exposing a callable `default`."""
    if callable(result) and not inspect.ismodule(result):
        return result
    if isinstance(result, Mapping):
        candidate = result.get("default")
    else:
        candidate = getattr(result, "default", None)
    if callable(candidate):
        return candidate
    raise ConverterFormatError(result)


class ConverterState:
    """Loader + memoized conversion function.

    `loader` is an async callable ``(value) -> callable | {"default": callable}``
    or an import path string (see `import_loader`).
    """

    def __init__(
        self,
        loader: FuncLoader | str | None = None,
        func: ConverterFunc | None = None,
    ):
        self.loader: FuncLoader | None = (
            import_loader(loader) if isinstance(loader, str) else loader
        )
        self._func: ConverterFunc | None = func
        self._inflight: Future | None = None
        self._claim_lock = threading.Lock()
        self.error: ConverterLoadError | ConverterFormatError | None = None

    def __repr__(self) -> str:
        return f"ConverterState(loader={self.loader_name!r}, ready={self.ready})"

    @property
    def loader_name(self) -> str | None:
        return None if self.loader is None else _loader_name(self.loader)

    @property
    def func(self) -> ConverterFunc | None:
        return self._func

    @property
    def broken(self) -> bool:
        return self._func is BROKEN_FUNC

    @property
    def ready(self) -> bool:
        """No loader, or the attempt settled (callable or BROKEN_FUNC)."""
        return self.loader is None or self._func is not None

    def canonical_key(self) -> Any:
        """Identity contribution: the import path, else the loader, else the func."""
        path = getattr(self.loader, "module_path", None)
        if isinstance(path, str):
            return ("path", path)
        if self.loader is not None:
            return ("loader", self.loader)
        return ("func", self._func)

    async def load(self, value: Any = None) -> ConverterFunc | None:
        """Resolve the converter function, invoking the loader at most once."""
        with self._claim_lock:
            if self.loader is None or self._func is not None:
                return self._func
            entry = self._inflight
            is_leader = entry is None
            if is_leader:
                entry = self._inflight = Future()

        if not is_leader:
            # a cancelled follower must not cancel the shared entry
            return await asyncio.shield(asyncio.wrap_future(entry))

        loader_name = _loader_name(self.loader)
        func: ConverterFunc = BROKEN_FUNC
        try:
            try:
                result = self.loader(value)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                failure = ConverterLoadError(loader_name, e)
                self.error = failure
                logger.error(
                    f"Converter loader failed: {e}",
                    extra={"error_code": failure.code, "loader": loader_name},
                    exc_info=True,
                )
                return BROKEN_FUNC

            try:
                func = _unwrap(result)
            except ConverterFormatError as e:
                self.error = e
                logger.error(
                    f"Converter loader returned an unknown format: {result!r}",
                    extra={"error_code": e.code, "loader": loader_name},
                )
                raise

            logger.debug("Converter loaded", extra={"loader": loader_name})
            return func
        finally:
            # BROKEN_FUNC unless resolved; also covers CancelledError and KeyboardInterrupt
            self._settle(entry, func)

    def _settle(self, entry: Future, func: ConverterFunc) -> None:
        with self._claim_lock:
            self._func = func
            self._inflight = None
        if not entry.done():
            entry.set_result(func)


def as_converter_state(value: "ConverterState | FuncLoader | str") -> ConverterState:
    """Wrap a loader or import path; an existing ConverterState is returned as is."""
    if isinstance(value, ConverterState):
        return value
    return ConverterState(value)


def bind_converters(
    instance: Meta,
    *,
    value_input: "ConverterState | FuncLoader | str | None" = None,
    value_output: "ConverterState | FuncLoader | str | None" = None,
    convertable_check: "ConverterState | FuncLoader | str | None" = None,
) -> Meta:
    """Attach converter loaders to an editor-bound instance.

    Slots left as None keep their current converter.
    """
    if value_input is not None:
        instance = instance.value_converter_input(as_converter_state(value_input))
    if value_output is not None:
        instance = instance.value_converter_output(as_converter_state(value_output))
    if convertable_check is not None:
        instance = instance.value_convertable_check(as_converter_state(convertable_check))
    return instance
