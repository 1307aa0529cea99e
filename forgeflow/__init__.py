"""Forgeflow: event-driven runtime that turns trigger events into model prompts."""

__version__ = "0.1.0"
