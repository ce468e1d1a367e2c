from __future__ import annotations

import os
from pathlib import Path
from typing import Dict

from dotenv import dotenv_values


def load_env(path: str | Path, override: bool = True) -> Dict[str, str]:
    """
    Export the KEY=VALUE pairs of a .env file into os.environ.

    Parsing (quotes, comments, export prefixes) is python-dotenv's. A missing
    file is not an error. Keys declared without a value are ignored, and with
    override=False a variable already in the environment is left alone.

    Returns:
        The keys actually exported, with their values
    """
    env_file = Path(path)
    if not env_file.is_file():
        return {}

    exported: Dict[str, str] = {}
    for key, value in dotenv_values(env_file).items():
        if value is None or (not override and key in os.environ):
            continue
        os.environ[key] = value
        exported[key] = value
    return exported
