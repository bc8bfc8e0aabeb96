"""tmplset: a minimal view layer over Jinja2 with compiled-template caching."""

from importlib.metadata import PackageNotFoundError, version

from tmplset.compiler import CompiledChain
from tmplset.config import TemplateSettings, configure_logging, get_settings
from tmplset.exceptions import (
    ConfigurationException,
    ErrorCode,
    ExecutionException,
    LoadException,
    ParseException,
    TmplException,
)
from tmplset.loaders import FileSystemLoader, Loader, MemoryLoader, PackageLoader
from tmplset.pool import BufferPool, Pool, default_pool
from tmplset.template_set import TemplateSet, cache_key
from tmplset.views import View, Viewable, view_context

try:
    __version__ = version("tmplset")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "BufferPool",
    "CompiledChain",
    "ConfigurationException",
    "ErrorCode",
    "ExecutionException",
    "FileSystemLoader",
    "LoadException",
    "Loader",
    "MemoryLoader",
    "PackageLoader",
    "ParseException",
    "Pool",
    "TemplateSet",
    "TemplateSettings",
    "TmplException",
    "View",
    "Viewable",
    "cache_key",
    "configure_logging",
    "default_pool",
    "get_settings",
    "view_context",
]
