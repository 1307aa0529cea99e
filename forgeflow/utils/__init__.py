"""Shared helpers: constants, templating and Google auth."""

from .context_hub import ContextHub
from .google_auth import GConf, gmail_auth
from .template import TemplateEngine, verbatim

__all__ = [
    "ContextHub",
    "GConf",
    "gmail_auth",
    "TemplateEngine",
    "verbatim",
]
