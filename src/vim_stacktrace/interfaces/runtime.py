"""Abstract interfaces for the live Vim runtime."""

from collections.abc import Sequence
from typing import Protocol


class ScriptRuntime(Protocol):
    """Introspection queries against a running Vim.

    Implementations are called synchronously from worker threads. Every
    method raises IntrospectionError when the query fails or the runtime
    returns something that is not text.
    """

    def expand(self, expression: str) -> str:
        """
        Expand a special expression such as <sfile> or <slnum>.

        Args:
            expression: Expression passed to expand()

        Returns:
            Expanded string

        Raises:
            IntrospectionError: If the query fails or the result is not a string
        """
        ...

    def describe_function(self, name: str) -> str:
        """
        Return the verbose dump of a function (:verbose function {name}).

        The dump lists the function header, an optional "Last set from"
        line naming the defining script and the numbered body lines.

        Args:
            name: Function name as it appears in a throwpoint ("F",
                "<SNR>13_test", "{14}")

        Returns:
            Multi-line dump text

        Raises:
            IntrospectionError: If the function is unknown or cannot be listed
                (lambdas and partials)
        """
        ...

    def message_history(self) -> str:
        """
        Return the message history (:messages).

        Returns:
            Message history text

        Raises:
            IntrospectionError: If the query fails
        """
        ...


class Selector(Protocol):
    """Lets the user pick one entry out of a list of candidates."""

    def select(self, candidates: Sequence[str]) -> int:
        """
        Ask the user to choose a candidate.

        Args:
            candidates: Display lines, already numbered from 1

        Returns:
            1-based index of the chosen candidate, 0 if cancelled

        Raises:
            IntrospectionError: If the prompt fails
        """
        ...
