"""Command-line front-end base."""

from .base_cli import BaseCLI

__all__ = ["BaseCLI"]
