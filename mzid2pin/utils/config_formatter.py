"""Colour-coded printing of resolved conversion settings."""

from typing import Optional

from rich.console import Console
from rich.text import Text
from omegaconf import DictConfig, OmegaConf


class ConfigFormatter:
    """Print a Hydra configuration as YAML with keys coloured by nesting depth.

    Unset values (`null`) are dimmed and list entries, such as the input file
    lists, are shown in the colour of the key they belong to.

    Args:
        console: Console to print to. Defaults to standard output.
    """

    DEPTH_COLOURS = [
        "bright_cyan",
        "bright_green",
        "bright_yellow",
        "bright_magenta",
    ]

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_config(self, cfg: DictConfig) -> None:
        """Print the configuration.

        Args:
            cfg: The composed configuration.
        """
        self.console.print(self.format_config(cfg), end="")

    def format_config(self, cfg: DictConfig) -> Text:
        output = Text()
        for line in OmegaConf.to_yaml(cfg).splitlines():
            output.append_text(self.format_line(line))
            output.append("\n")
        return output

    def format_line(self, line: str) -> Text:
        """Style a single YAML line.

        Args:
            line: One line of YAML output.

        Returns:
            Text: The styled line, without a trailing newline.
        """
        stripped = line.lstrip()
        indent = line[: len(line) - len(stripped)]
        depth = len(indent) // 2
        output = Text(indent)

        if stripped.startswith("- "):
            # List entries are indented one level past their key
            output.append(stripped, style=self.colour_for_depth(max(depth - 1, 0)))
            return output

        separator = self.find_separator(stripped)
        if separator == -1:
            output.append(stripped)
            return output

        key, value = stripped[:separator], stripped[separator + 1 :]
        output.append(key, style=f"bold {self.colour_for_depth(depth)}")
        output.append(":")
        output.append(value, style="dim" if value.strip() == "null" else "")
        return output

    def colour_for_depth(self, depth: int) -> str:
        return self.DEPTH_COLOURS[min(depth, len(self.DEPTH_COLOURS) - 1)]

    @staticmethod
    def find_separator(text: str) -> int:
        """Find the colon separating a YAML key from its value.

        Only a colon followed by a space or the end of the line counts, so
        colons inside values such as paths or URLs are left alone.

        Returns:
            int: Index of the separator, or -1 if there is none.
        """
        for index, char in enumerate(text):
            if char == ":" and (index + 1 == len(text) or text[index + 1] == " "):
                return index
        return -1
