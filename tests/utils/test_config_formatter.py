"""Tests for colour-coded config printing."""

from io import StringIO

from omegaconf import OmegaConf
from rich.console import Console

from mzid2pin.utils.config_formatter import ConfigFormatter


class TestConfigFormatter:
    """Test the ConfigFormatter class."""

    def test_find_separator(self):
        """Test that only a key separator is found."""
        assert ConfigFormatter.find_separator("enzyme: trypsin") == 6
        assert ConfigFormatter.find_separator("features:") == 8
        assert ConfigFormatter.find_separator("- /data/run:1.mzid") == -1
        assert ConfigFormatter.find_separator("url: http://example.org") == 3

    def test_colour_for_depth(self):
        """Test that deep levels reuse the last colour."""
        formatter = ConfigFormatter()
        assert formatter.colour_for_depth(0) == "bright_cyan"
        assert formatter.colour_for_depth(1) == "bright_green"
        assert formatter.colour_for_depth(10) == ConfigFormatter.DEPTH_COLOURS[-1]

    def test_format_line_styles(self):
        """Test key and null value styling."""
        formatter = ConfigFormatter()

        line = formatter.format_line("  enzyme: trypsin")
        assert line.plain == "  enzyme: trypsin"
        assert any(span.style == "bold bright_green" for span in line.spans)

        null_line = formatter.format_line("store_path: null")
        assert any(span.style == "dim" for span in null_line.spans)

    def test_format_list_entry(self):
        """Test that list entries take the colour of their key."""
        line = ConfigFormatter().format_line("- target.mzid")
        assert line.plain == "- target.mzid"
        assert line.spans[0].style == "bright_cyan"

    def test_print_config(self):
        """Test that the printed text matches the YAML rendering."""
        cfg = OmegaConf.create(
            {
                "features": {"enzyme": "trypsin", "ptm": False},
                "store_path": None,
                "target_files": ["a.mzid", "b.mzid"],
            }
        )
        buffer = StringIO()
        console = Console(file=buffer, force_terminal=False, width=120)

        ConfigFormatter(console=console).print_config(cfg)

        printed = [line for line in buffer.getvalue().splitlines() if line.strip()]
        assert printed == OmegaConf.to_yaml(cfg).splitlines()
