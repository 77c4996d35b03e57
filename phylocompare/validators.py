"""Custom validators for argument parsing."""

import argparse
from typing import Any, Sequence


class MinimumIntegerAction(argparse.Action):
    """
    Argparse action that rejects integers below ``minimum``.

    Used with ``type=int``; pass ``minimum=`` to ``add_argument``.
    """

    def __init__(self, option_strings: Sequence[str], dest: str, minimum: int = 0, **kwargs: Any):
        self.minimum = minimum
        super().__init__(option_strings, dest, **kwargs)

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: str | Sequence[Any] | None,
        option_string: str | None = None,
    ) -> None:
        if not isinstance(values, int):
            parser.error(f"{option_string} must be an integer")
        elif values < self.minimum:
            parser.error(f"Minimum value for {option_string} is {self.minimum}, got {values}")
        setattr(namespace, self.dest, values)
