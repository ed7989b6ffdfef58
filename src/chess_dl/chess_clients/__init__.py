"""Public exports for chess client abstractions."""

from __future__ import annotations

from chess_dl.chess_clients.base_chess_client import BaseChessClient, BaseChessClientContext
from chess_dl.chess_clients.chesscom_client import ChesscomClient, ChesscomClientContext
from chess_dl.chess_clients.mock_chess_client import MockChessClient

__all__ = [
    "BaseChessClient",
    "BaseChessClientContext",
    "ChesscomClient",
    "ChesscomClientContext",
    "MockChessClient",
]
