"""
Centralized path configuration for course-inbox.

Supports:
- Local config: ./config/*.yaml
- External overlay: CONFIG_DIR=/path/to/private/config
- Fallback to .example.yaml when .yaml missing

Usage:
    from course_inbox.core.paths import get_config_path

    rules_path = get_config_path("categorization_rules.yaml")
"""
import os
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# From course_inbox/core/paths.py -> course_inbox/core -> course_inbox -> repo root
_REPO_ROOT = Path(__file__).parent.parent.parent
_DEFAULT_CONFIG_DIR = _REPO_ROOT / "config"

CONFIG_DIR = Path(os.getenv("CONFIG_DIR", str(_DEFAULT_CONFIG_DIR)))


def get_config_path(
    filename: str,
    required: bool = False,
    config_dir: Optional[Path] = None,
) -> Optional[Path]:
    """
    Resolve config file path with fallback logic.

    Resolution order:
    1. config_dir (or CONFIG_DIR) / filename
    2. config_dir (or CONFIG_DIR) / filename.example.yaml (if .yaml)
    3. Default config dir / filename
    4. Default config dir / filename.example.yaml

    Args:
        filename: Config filename (e.g., "categorization_rules.yaml")
        required: If True, raise FileNotFoundError when not found
        config_dir: Explicit overlay directory, overrides CONFIG_DIR

    Returns:
        Path to config file, or None if not found and not required

    Raises:
        FileNotFoundError: If required=True and file not found
    """
    overlay = Path(config_dir) if config_dir else CONFIG_DIR
    example_name = filename.replace('.yaml', '.example.yaml') if filename.endswith('.yaml') else None

    candidates = [overlay / filename]
    if example_name:
        candidates.append(overlay / example_name)

    if overlay != _DEFAULT_CONFIG_DIR:
        candidates.append(_DEFAULT_CONFIG_DIR / filename)
        if example_name:
            candidates.append(_DEFAULT_CONFIG_DIR / example_name)

    for path in candidates:
        if path.exists():
            logger.debug(f"Config '{filename}' resolved to: {path}")
            return path

    if required:
        searched = [str(c) for c in candidates]
        raise FileNotFoundError(
            f"Required config file '{filename}' not found.\n"
            f"Searched: {searched}"
        )

    logger.debug(f"Config '{filename}' not found (optional)")
    return None
