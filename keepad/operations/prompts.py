"""Console confirmation prompts shared by the destructive procedures."""

from typing import Callable


def confirm(question: str, force: bool = False, prompt: Callable[[str], str] = input) -> bool:
    """Ask a yes/no question; force answers yes without asking."""
    if force:
        return True
    answer = prompt(f"{question} [y/N]: ")
    return answer.strip().lower() in ("y", "yes")


def confirm_phrase(phrase: str, force: bool = False, prompt: Callable[[str], str] = input) -> bool:
    """Require the operator to type phrase exactly; force skips the prompt."""
    if force:
        return True
    answer = prompt(f"Type {phrase} to continue: ")
    return answer.strip() == phrase
