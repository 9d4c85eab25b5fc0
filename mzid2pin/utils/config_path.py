"""Configuration directory resolution.

Configs ship inside the package (`mzid2pin/configs`). This module finds them
both for an installed package and for a source checkout, and layers a user
supplied directory on top of them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, List
import logging
import shutil
import tempfile
import atexit

logger = logging.getLogger(__name__)

_temp_dirs: List[Path] = []


def _cleanup_temp_dirs() -> None:
    """Remove merged config directories created during this process."""
    for temp_dir in _temp_dirs:
        if temp_dir.exists():
            shutil.rmtree(temp_dir, ignore_errors=True)


atexit.register(_cleanup_temp_dirs)


def get_config_dir() -> Path:
    """Get the packaged config directory.

    Returns:
        Path to `mzid2pin/configs`, resolved through `importlib.resources` when
        installed and relative to this file in a source checkout.

    Raises:
        FileNotFoundError: If no config directory can be found.
    """
    try:
        from importlib.resources import files

        config_path = files("mzid2pin").joinpath("configs")
        if config_path.is_dir():
            return Path(str(config_path))
    except (ModuleNotFoundError, TypeError, AttributeError, NotADirectoryError):
        # Namespace packages under an editable install have no directory to resolve
        pass

    # This file lives in mzid2pin/utils/
    package_dir = Path(__file__).parent.parent
    dev_configs = package_dir / "configs"
    if dev_configs.is_dir():
        return dev_configs

    repo_configs = package_dir.parent / "configs"
    if repo_configs.is_dir():
        return repo_configs

    raise FileNotFoundError(
        f"Could not locate configs directory. Tried:\n"
        f"  - Package configs: mzid2pin.configs\n"
        f"  - Dev configs: {dev_configs}\n"
        f"  - Repository configs: {repo_configs}"
    )


def _merge_config_dirs(custom_dir: Path, package_dir: Path) -> Path:
    """Copy the packaged configs and then the custom ones into a temporary directory.

    Files in `custom_dir` replace packaged files with the same relative path,
    so a custom directory only needs to hold the files it changes.

    Args:
        custom_dir: User config directory.
        package_dir: Packaged config directory.

    Returns:
        Path to the merged directory, removed at interpreter exit.
    """
    temp_dir = Path(tempfile.mkdtemp(prefix="mzid2pin_configs_"))
    _temp_dirs.append(temp_dir)

    for source_dir in (package_dir, custom_dir):
        if not source_dir.exists():
            continue
        for item in source_dir.rglob("*"):
            if item.is_file():
                rel_path = item.relative_to(source_dir)
                dest_path = temp_dir / rel_path
                dest_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(item, dest_path)
                if source_dir is custom_dir:
                    logger.debug(f"Merged custom config: {rel_path}")

    return temp_dir


def get_primary_config_dir(custom_config_dir: Optional[str] = None) -> Path:
    """Get the directory Hydra should compose configs from.

    Args:
        custom_config_dir: Optional user config directory layered over the
            packaged configs.

    Returns:
        Absolute path to the packaged config directory, or to a temporary merged
        directory when `custom_config_dir` is given.

    Raises:
        FileNotFoundError: If `custom_config_dir` does not exist.
        ValueError: If `custom_config_dir` is not a directory.
    """
    if not custom_config_dir:
        return get_config_dir().resolve()

    custom_path = Path(custom_config_dir).resolve()
    if not custom_path.exists():
        raise FileNotFoundError(
            f"Custom config directory does not exist: {custom_config_dir}"
        )
    if not custom_path.is_dir():
        raise ValueError(f"Custom config path is not a directory: {custom_config_dir}")

    package_path = get_config_dir().resolve()
    merged_dir = _merge_config_dirs(custom_path, package_path)
    logger.info(
        f"Using merged config directory (custom: {custom_path}, "
        f"package: {package_path}) -> {merged_dir}"
    )
    return merged_dir
