"""Prompt texts sent with screenshot analysis requests."""

from pathlib import Path


PROMPT_DIR = Path(__file__).parent


def load_prompt(name: str) -> str:
    """Read a prompt stored next to this module.

    Args:
        name: Name of the prompt file (without .md extension)

    Returns:
        Prompt text with surrounding whitespace removed
    """
    prompt_file = PROMPT_DIR / f"{name}.md"

    if not prompt_file.exists():
        raise FileNotFoundError(f"Prompt not found: {prompt_file}")

    return prompt_file.read_text(encoding="utf-8").strip()


__all__ = ["load_prompt"]
