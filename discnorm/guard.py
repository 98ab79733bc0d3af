"""Precondition helpers that fail fast with the offending path in the message."""

from pathlib import Path
from typing import Optional, Type, Union

from discnorm.errors import GuardError, DiscnormError

PathLike = Union[str, Path]


def guard(
    condition: bool,
    message: Optional[str] = None,
    error: Type[DiscnormError] = GuardError
) -> None:
    """
    Raise when a condition does not hold.

    Args:
        condition: Condition to check
        message: Error message (default: generic message)
        error: Exception class to raise

    Raises:
        DiscnormError: Subclass given by ``error`` when condition is false
    """
    if not condition:
        raise error(message or "guard condition failed")


def guard_file_exists(
    path: PathLike,
    message: Optional[str] = None,
    error: Type[DiscnormError] = GuardError
) -> Path:
    """
    Ensure a regular file exists at path.

    Returns:
        The path as a Path object
    """
    path = Path(path)
    guard(path.is_file(), message or f"File does not exist: {path}", error)
    return path


def guard_directory_exists(
    path: PathLike,
    message: Optional[str] = None,
    error: Type[DiscnormError] = GuardError
) -> Path:
    """
    Ensure a directory exists at path.

    Returns:
        The path as a Path object
    """
    path = Path(path)
    guard(path.is_dir(), message or f"Directory does not exist: {path}", error)
    return path


def guard_file_does_not_exist(
    path: PathLike,
    message: Optional[str] = None,
    error: Type[DiscnormError] = GuardError
) -> Path:
    """Ensure nothing exists at path yet."""
    path = Path(path)
    guard(not path.exists(), message or f"File should not exist: {path}", error)
    return path
