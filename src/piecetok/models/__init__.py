"""Subword model implementations."""

from .base import Model, Piece
from .wordpiece import WordPiece


__all__ = ["Model", "Piece", "WordPiece"]
