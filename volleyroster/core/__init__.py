"""Core module for the volleyroster application."""

from .types import FirestoreDocument

__all__ = ["FirestoreDocument"]
