"""Template set: compile-once, render-many caching of view template chains.

Cache policy:
    Entries are keyed by the view's template chain as a tuple of names.
    Views of different types that declare the same chain share one entry.
    Entries are never evicted; the key space is bounded by the distinct
    chains a program declares, not by request volume.

Concurrency:
    One lock guards the compiled-template map and the source cache for the
    whole lookup-or-compile step, so first-time compilations are
    serialized across all chains. Execution runs after the lock is
    released. The buffer pool synchronizes itself and is never touched
    while the lock is held.
"""

import asyncio
import threading
from collections.abc import Callable, Iterator
from typing import Any, BinaryIO

from tmplset.compiler import EMPTY, CompiledChain, compile_chain
from tmplset.config import DEFAULT_POOL_SIZE, TemplateSettings, get_settings
from tmplset.exceptions import ExecutionException, LoadException, TmplException
from tmplset.loaders import FileSystemLoader, Loader
from tmplset.logging_config import get_logger, log_with_context
from tmplset.pool import BufferPool, Pool, default_pool
from tmplset.views import Viewable, view_context

logger = get_logger(__name__)

CacheKey = tuple[str, ...]


def cache_key(view: Viewable) -> CacheKey:
    """Derive the cache key for a view from its template chain."""
    names = view.templates()
    if isinstance(names, (str, bytes)):
        raise TypeError(f"{type(view).__name__}.templates() must return a sequence of names, not a string")
    return tuple(names)


class TemplateSet:
    """A set of HTML templates rendered through views.

    Args:
        settings: Base settings (defaults to the get_settings() singleton)
        loader: Template source loader (defaults to a FileSystemLoader on
            settings.root with settings.extension)
        pool: Buffer pool used by render() (defaults to the shared pool, or
            a private one when settings.pool_size differs from the default)
        **overrides: Settings fields to replace, e.g. ``recompile=True``

    Example:
        templates = TemplateSet(root="templates", recompile=settings.debug)
        html = templates.render(IndexView(title="Home"))
    """

    def __init__(
        self,
        settings: TemplateSettings | None = None,
        *,
        loader: Loader | None = None,
        pool: Pool | None = None,
        **overrides: Any,
    ):
        base = settings if settings is not None else get_settings()
        self._settings = base.with_overrides(**overrides)

        if loader is None:
            loader = FileSystemLoader(self._settings.root, self._settings.extension)
        self._loader = loader

        if pool is None:
            if self._settings.pool_size == DEFAULT_POOL_SIZE:
                pool = default_pool()
            else:
                pool = BufferPool(self._settings.pool_size)
        self._pool = pool

        self._lock = threading.Lock()
        self._templates: dict[CacheKey, CompiledChain] = {}
        self._sources: dict[str, bytes] = {}

    @property
    def settings(self) -> TemplateSettings:
        return self._settings

    @property
    def loader(self) -> Loader:
        return self._loader

    @property
    def pool(self) -> Pool:
        return self._pool

    @property
    def recompile(self) -> bool:
        return self._settings.recompile

    def render(self, view: Viewable | None) -> bytes:
        """Render view into a pooled buffer and return the output.

        The buffer goes back to the pool whether or not rendering succeeds;
        on failure its partial content is discarded and only the exception
        is raised.

        Raises:
            LoadException: A chain member could not be loaded
            ParseException: A chain member has a syntax error
            ExecutionException: The template failed against the view's data
        """
        if view is None:
            return b""
        buffer = self._pool.get()
        try:
            self.render_to(buffer, view)
            return buffer.getvalue()
        finally:
            self._pool.put(buffer)

    async def render_async(self, view: Viewable | None) -> bytes:
        """Render view in a worker thread so the event loop is not blocked."""
        return await asyncio.to_thread(self.render, view)

    def render_to(self, stream: BinaryIO, view: Viewable | None) -> None:
        """Write the result of applying the view's templates to stream.

        Output is written chunk by chunk; bytes already written stay in the
        stream if execution fails part way.
        """
        compiled = self.compile(view)
        if view is None:
            return
        encoding = self._settings.encoding
        for chunk in self._execute(compiled, view):
            stream.write(chunk.encode(encoding))

    def _execute(self, compiled: CompiledChain, view: Viewable) -> Iterator[str]:
        """Yield output chunks, wrapping any failure raised while executing."""
        try:
            yield from compiled.generate(view_context(view))
        except Exception as e:
            log_with_context(
                logger,
                "warning",
                "Template render failed",
                chain=list(compiled.chain),
                view_type=type(view).__name__,
                error=str(e),
                error_type=type(e).__name__,
                event_type="template_render_error",
            )
            raise ExecutionException(
                f"Failed to render {list(compiled.chain)}: {e}",
                details={
                    "chain": list(compiled.chain),
                    "view_type": type(view).__name__,
                    "error_type": type(e).__name__,
                },
            ) from e

    def compile(self, view: Viewable | None) -> CompiledChain:
        """Return the compiled template for view, compiling it if needed.

        In recompile mode the chain is reloaded and reparsed on every call
        and the cache is neither read nor written.
        """
        if view is None:
            return EMPTY
        key = cache_key(view)

        if self._settings.recompile:
            log_with_context(
                logger,
                "debug",
                "Recompiling template chain",
                chain=list(key),
                event_type="template_recompile",
            )
            return self._compile(key, self._loader.load)

        with self._lock:
            compiled = self._templates.get(key)
            if compiled is not None:
                log_with_context(
                    logger,
                    "debug",
                    "Template cache hit",
                    chain=list(key),
                    event_type="template_cache_hit",
                )
                return compiled

            log_with_context(
                logger,
                "debug",
                "Template cache miss, compiling",
                chain=list(key),
                event_type="template_cache_miss",
            )
            load = self._load_cached if self._settings.cache_sources else self._loader.load
            try:
                compiled = self._compile(key, load)
            except TmplException:
                # A failed chain must reload its members on the next attempt
                for name in key:
                    self._sources.pop(name, None)
                raise
            self._templates[key] = compiled
            return compiled

    def is_cached(self, view: Viewable | None) -> bool:
        """Check whether the view's chain has a compiled cache entry."""
        if view is None:
            return False
        key = cache_key(view)
        with self._lock:
            return key in self._templates

    def __len__(self) -> int:
        """Number of compiled chains in the cache."""
        with self._lock:
            return len(self._templates)

    def _load_cached(self, name: str) -> bytes:
        # Caller holds self._lock
        source = self._sources.get(name)
        if source is None:
            source = self._loader.load(name)
            self._sources[name] = source
        return source

    def _compile(self, key: CacheKey, load: Callable[[str], bytes]) -> CompiledChain:
        try:
            compiled = compile_chain(
                key,
                load,
                encoding=self._settings.encoding,
                autoescape=self._settings.autoescape,
                strict_undefined=self._settings.strict_undefined,
            )
        except LoadException as e:
            log_with_context(
                logger,
                "warning",
                "Template load failed",
                template=e.name,
                chain=list(key),
                error=e.message,
                event_type="template_load_error",
            )
            raise

        log_with_context(
            logger,
            "info",
            "Compiled template chain",
            chain=list(key),
            recompile=self._settings.recompile,
            event_type="template_compiled",
        )
        return compiled

    def __repr__(self) -> str:
        return f"TemplateSet(loader={self._loader!r}, recompile={self._settings.recompile})"
