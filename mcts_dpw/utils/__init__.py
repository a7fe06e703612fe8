"""Utility helpers."""

from mcts_dpw.utils.logging import setup_logging

__all__ = ['setup_logging']
