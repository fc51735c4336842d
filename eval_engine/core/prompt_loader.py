"""
Prompt Loader Utility

Loads judge prompt templates from the package `prompts` directory.

Templates are read once and cached for the life of the process.
"""

from functools import lru_cache
from pathlib import Path

from eval_engine.core.error_codes import ConfigurationErrorCode
from eval_engine.core.exceptions import ConfigurationException

PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"


@lru_cache(maxsize=32)
def load_prompt(prompt_name: str) -> str:
    """
    Load a prompt from the 'prompts' directory.

    Args:
        prompt_name (str): The filename of the prompt (e.g., 'judge_scoring.txt')

    Returns:
        str: The content of the prompt file.

    Raises:
        ConfigurationException: If the prompt file is not found or outside the directory.
    """
    base_dir = PROMPT_DIR.resolve()
    target_path = (base_dir / prompt_name).resolve()

    if not target_path.is_relative_to(base_dir):
        raise ConfigurationException(
            "Invalid prompt path outside prompts directory",
            ConfigurationErrorCode.INVALID_CONFIG,
            {"prompt_name": prompt_name},
        )

    try:
        return target_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigurationException(
            f"Prompt file not found at: {target_path}",
            ConfigurationErrorCode.MISSING_CONFIG,
            {"prompt_name": prompt_name, "file_path": str(target_path)},
        ) from exc
