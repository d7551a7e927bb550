"""
Small utilities: prompt files and JSON-safe conversion.

Rationale:
- System prompts live as text files next to the code so they can be edited without
  touching Python.
- Series values may come out of pandas as numpy scalars; convert them to native
  Python types before they reach a response.
"""

import os
from typing import Any

import numpy as np

PROMPTS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "prompts")


def read_prompt(name: str) -> str:
    """Read a prompt text file from the prompts directory."""
    path = os.path.join(PROMPTS_DIR, name)
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def safe_serialize(obj: Any) -> Any:
    """Convert pandas/numpy types to Python native types for JSON serialization."""
    if isinstance(obj, (int, float, str, bool)) or obj is None:
        return obj
    if isinstance(obj, (np.integer, np.floating, np.bool_)):
        return obj.item()
    if isinstance(obj, dict):
        return {safe_serialize(k): safe_serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [safe_serialize(x) for x in obj]
    return str(obj)
