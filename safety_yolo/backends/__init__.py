"""
Model executors for safety_yolo.

Executors are kept in a separate module so pre/post-processing stays
lightweight and can be used without importing an inference runtime.
"""

from __future__ import annotations

from .base import ModelExecutor

__all__ = ["ModelExecutor"]
