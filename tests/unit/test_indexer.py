"""Tests for the Vim script function indexer and the filesystem reader."""

from pathlib import Path

import pytest

from vim_stacktrace.adapters.source.filesystem import LocalSourceReader
from vim_stacktrace.adapters.source.indexer import VimScriptFunctionIndexer
from vim_stacktrace.utils.async_helpers import SourceReadError, UnresolvableFrameError


@pytest.fixture
def indexer() -> VimScriptFunctionIndexer:
    """Create an indexer reading from disk."""
    return VimScriptFunctionIndexer(LocalSourceReader())


class TestVimScriptFunctionIndexer:
    """Test VimScriptFunctionIndexer."""

    def test_index_sample_script(
        self, indexer: VimScriptFunctionIndexer, sample_script: Path
    ) -> None:
        """Test that plain and script-local functions are found."""
        functions = indexer.index(str(sample_script))

        assert functions == {"F": 2, "s:test": 7, "s:test2": 16}

    def test_abbreviations_and_bang(self, indexer: VimScriptFunctionIndexer) -> None:
        text = "\n".join(
            [
                "fu A()",
                "func! B(x)",
                "  function C(...) abort",
                ":function D() range",
                "function! g:E()",
                "function autoload#name#F() abort",
            ]
        )

        functions = indexer.index_text(text)

        assert functions == {
            "A": 1,
            "B": 2,
            "C": 3,
            "D": 4,
            "g:E": 5,
            "autoload#name#F": 6,
        }

    def test_sid_prefix_is_also_script_local(self, indexer: VimScriptFunctionIndexer) -> None:
        functions = indexer.index_text("function! <SID>helper()\nendfunction")
        assert functions["<SID>helper"] == 1
        assert functions["s:helper"] == 1

    def test_ignored_lines(self, indexer: VimScriptFunctionIndexer) -> None:
        """Test that listings, calls and dictionary functions are skipped."""
        text = "\n".join(
            [
                "function",
                "function s:d.f() abort",
                "call F()",
                '" function Commented()',
                "let functions = []",
                "endfunction",
            ]
        )

        assert indexer.index_text(text) == {}

    def test_first_definition_wins(self, indexer: VimScriptFunctionIndexer) -> None:
        text = "function! F()\nendfunction\nfunction! F()\nendfunction"
        assert indexer.index_text(text) == {"F": 1}

    def test_unreadable_script(self, indexer: VimScriptFunctionIndexer, tmp_path: Path) -> None:
        with pytest.raises(UnresolvableFrameError):
            indexer.index(str(tmp_path / "missing.vim"))

    def test_encoding(self, tmp_path: Path) -> None:
        path = tmp_path / "latin1.vim"
        path.write_bytes("\" caf\xe9\nfunction! F()\nendfunction\n".encode("latin-1"))

        indexer = VimScriptFunctionIndexer(LocalSourceReader(), encoding="latin-1")

        assert indexer.index(str(path)) == {"F": 2}


class TestLocalSourceReader:
    """Test LocalSourceReader."""

    def test_read(self, tmp_path: Path) -> None:
        path = tmp_path / "a.vim"
        path.write_bytes(b"echo 1\n")
        assert LocalSourceReader().read(str(path)) == b"echo 1\n"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SourceReadError, match="Cannot read"):
            LocalSourceReader().read(str(tmp_path / "missing.vim"))

    def test_directory(self, tmp_path: Path) -> None:
        with pytest.raises(SourceReadError):
            LocalSourceReader().read(str(tmp_path))
