"""Custom Pydantic validators for configuration."""

from pathlib import Path


def validate_log_level(value: str) -> str:
    """Validate log level is one of the standard levels.

    Args:
        value: Log level string.

    Returns:
        Validated, uppercased log level.

    Raises:
        ValueError: If log level is not valid.
    """
    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if value.upper() not in valid_levels:
        raise ValueError(f"log_level must be one of {valid_levels}, got {value}")
    return value.upper()


def validate_log_format(value: str) -> str:
    """Validate log format is 'json' or 'console'.

    Raises:
        ValueError: If log format is not valid.
    """
    valid_formats = {"json", "console"}
    if value.lower() not in valid_formats:
        raise ValueError(f"log_format must be one of {valid_formats}, got {value}")
    return value.lower()


def resolve_path(value: Path | str) -> Path:
    """Resolve a configured path to an absolute path.

    ``~`` is expanded; other relative paths are resolved against the
    project root.

    Args:
        value: Path value (string or Path).

    Returns:
        Resolved absolute Path.
    """
    path = Path(value).expanduser()

    if not path.is_absolute():
        # src/micro_consolidation/config -> project root
        project_root = Path(__file__).parent.parent.parent.parent
        path = project_root / path

    return path.resolve()
