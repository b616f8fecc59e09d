"""
Dinner, Decided - Prompt Logger.

Writes every collaborator call (prompts, parsed response or error) to a
JSON file for debugging. Enabled via DINNER_LOG_PROMPTS=1 or the
--log-prompts flag of `dinner serve`.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any

# Configuration
LOG_PROMPTS = os.getenv("DINNER_LOG_PROMPTS", "0") == "1"
LOG_DIR = Path("prompt_logs")

# Session tracking
_session_id: str | None = None
_call_counter: int = 0


def enable_prompt_logging(enabled: bool = True) -> None:
    """Enable or disable prompt logging."""
    global LOG_PROMPTS
    LOG_PROMPTS = enabled


def is_enabled() -> bool:
    return LOG_PROMPTS


def _get_session_dir() -> Path:
    """Get (and create) the directory for this run's logs."""
    global _session_id
    if _session_id is None:
        _session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    session_dir = LOG_DIR / _session_id
    session_dir.mkdir(parents=True, exist_ok=True)
    return session_dir


def _serialize(response: Any) -> Any:
    if hasattr(response, "model_dump"):
        return response.model_dump(mode="json")
    return response


def log_prompt(
    *,
    task: str,
    model: str,
    system_prompt: str,
    user_prompt: str,
    response_model: str,
    response: Any = None,
    error: str | None = None,
    config: dict | None = None,
) -> Path | None:
    """
    Log a prompt and its outcome.

    Returns:
        Path to the log file, or None if logging is disabled
    """
    if not LOG_PROMPTS:
        return None

    global _call_counter
    _call_counter += 1

    filepath = _get_session_dir() / f"{_call_counter:02d}_{task}.json"
    entry = {
        "time": datetime.now().isoformat(),
        "task": task,
        "model": model,
        "config": config or {},
        "response_model": response_model,
        "system_prompt": system_prompt,
        "user_prompt": user_prompt,
        "response": _serialize(response) if response is not None else None,
        "error": error,
    }
    filepath.write_text(json.dumps(entry, indent=2, default=str), encoding="utf-8")
    return filepath


def get_session_log_dir() -> Path | None:
    """Get the current session's log directory, if logging is enabled."""
    if not LOG_PROMPTS:
        return None
    return _get_session_dir()


def reset_session() -> None:
    """Reset the session (for testing)."""
    global _session_id, _call_counter
    _session_id = None
    _call_counter = 0
