"""Data-access handlers for the base entities."""

from .base import Repository

__all__ = ['Repository']
