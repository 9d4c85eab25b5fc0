"""Tests for config path resolution utilities."""

from __future__ import annotations

import pytest
from unittest.mock import patch, MagicMock

from mzid2pin.utils.config_path import (
    get_config_dir,
    get_primary_config_dir,
)


class TestGetConfigDir:
    """Tests for get_config_dir() function."""

    def test_package_mode(self, tmp_path):
        """Test config dir resolution in package mode."""
        package_configs = tmp_path / "package_configs"
        package_configs.mkdir()

        # Simulates files("mzid2pin").joinpath("configs") of an installed package
        mock_package_files = MagicMock()
        mock_configs = MagicMock()
        mock_configs.is_dir.return_value = True
        type(mock_configs).__str__ = lambda self: str(package_configs)
        mock_package_files.joinpath.return_value = mock_configs
        mock_files = MagicMock(return_value=mock_package_files)

        with patch("importlib.resources.files", mock_files):
            config_dir = get_config_dir()
            assert config_dir == package_configs
        mock_files.assert_called_once_with("mzid2pin")

    def test_dev_mode(self, tmp_path):
        """Test config dir resolution in a source checkout."""
        with patch("importlib.resources.files", side_effect=ModuleNotFoundError()):
            repo_root = tmp_path / "repo"
            package_dir = repo_root / "mzid2pin"
            configs_dir = package_dir / "configs"
            configs_dir.mkdir(parents=True)

            with patch(
                "mzid2pin.utils.config_path.__file__",
                str(package_dir / "utils" / "config_path.py"),
            ):
                config_dir = get_config_dir()
                assert config_dir == configs_dir

    def test_editable_install(self, tmp_path):
        """Test the checkout fallback when the namespace package has no directory."""
        with patch(
            "importlib.resources.files",
            side_effect=NotADirectoryError("MultiplexedPath only supports directories"),
        ):
            package_dir = tmp_path / "checkout" / "mzid2pin"
            configs_dir = package_dir / "configs"
            configs_dir.mkdir(parents=True)

            with patch(
                "mzid2pin.utils.config_path.__file__",
                str(package_dir / "utils" / "config_path.py"),
            ):
                assert get_config_dir() == configs_dir

    def test_dev_mode_alt_location(self, tmp_path):
        """Test config dir resolution with configs at the repository root."""
        with patch("importlib.resources.files", side_effect=ModuleNotFoundError()):
            repo_root = tmp_path / "repo"
            configs_dir = repo_root / "configs"
            configs_dir.mkdir(parents=True)

            with patch(
                "mzid2pin.utils.config_path.__file__",
                str(repo_root / "mzid2pin" / "utils" / "config_path.py"),
            ):
                config_dir = get_config_dir()
                assert config_dir == configs_dir

    def test_not_found(self):
        """Test error when config dir cannot be found."""
        with patch("importlib.resources.files", side_effect=ModuleNotFoundError()):
            with patch(
                "mzid2pin.utils.config_path.__file__",
                "/nonexistent/path/utils/config_path.py",
            ):
                with pytest.raises(FileNotFoundError):
                    get_config_dir()

    def test_packaged_configs_contain_convert(self):
        """The real packaged directory ships the conversion config."""
        assert (get_config_dir() / "convert.yaml").is_file()


class TestGetPrimaryConfigDir:
    """Tests for get_primary_config_dir() function."""

    def test_no_custom_dir(self, tmp_path):
        """Test primary config dir without custom directory."""
        package_dir = tmp_path / "package_configs"
        package_dir.mkdir()

        with patch(
            "mzid2pin.utils.config_path.get_config_dir", return_value=package_dir
        ):
            primary_dir = get_primary_config_dir()
            assert primary_dir == package_dir.resolve()

    def test_with_custom_dir(self, tmp_path):
        """Test primary config dir with custom directory (merged)."""
        custom_dir = tmp_path / "custom_configs"
        custom_dir.mkdir()
        (custom_dir / "convert.yaml").write_text("custom: true")

        package_dir = tmp_path / "package_configs"
        package_dir.mkdir()
        (package_dir / "convert.yaml").write_text("package: true")
        (package_dir / "extra.yaml").write_text("package: true")

        with patch(
            "mzid2pin.utils.config_path.get_config_dir", return_value=package_dir
        ):
            primary_dir = get_primary_config_dir(str(custom_dir))

            assert primary_dir.is_dir()
            assert primary_dir != package_dir.resolve()

            # Custom config overrides the packaged one
            assert "custom: true" in (primary_dir / "convert.yaml").read_text()
            # Packaged files missing from the custom dir stay available
            assert "package: true" in (primary_dir / "extra.yaml").read_text()

    def test_nested_custom_files(self, tmp_path):
        """Test that files in subdirectories of the custom dir are merged."""
        custom_dir = tmp_path / "custom_configs"
        (custom_dir / "features").mkdir(parents=True)
        (custom_dir / "features" / "glyco.yaml").write_text("pngasef: true")

        package_dir = tmp_path / "package_configs"
        package_dir.mkdir()
        (package_dir / "convert.yaml").write_text("package: true")

        with patch(
            "mzid2pin.utils.config_path.get_config_dir", return_value=package_dir
        ):
            primary_dir = get_primary_config_dir(str(custom_dir))

            assert (primary_dir / "features" / "glyco.yaml").exists()
            assert (primary_dir / "convert.yaml").exists()

    def test_custom_dir_not_exists(self):
        """Test error when custom directory doesn't exist."""
        with pytest.raises(FileNotFoundError, match="does not exist"):
            get_primary_config_dir("/nonexistent/path")

    def test_custom_dir_not_directory(self, tmp_path):
        """Test error when custom path is not a directory."""
        file_path = tmp_path / "not_a_dir"
        file_path.touch()

        with pytest.raises(ValueError, match="not a directory"):
            get_primary_config_dir(str(file_path))
