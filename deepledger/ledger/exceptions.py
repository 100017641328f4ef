# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Exceptions raised by the ledger (word embedding) subsystem.

Token lookup never raises; everything here comes from building, loading or
inspecting a ledger.
"""


class LedgerError(Exception):
    """Base for all ledger errors."""


class ParseError(LedgerError):
    """
    A corpus line could not be turned into a (token, vector) pair.

    The whole build is aborted; `line_number` is 1-based so it can be pasted
    straight into an editor.
    """

    def __init__(self, message: str, line_number: int) -> None:
        super().__init__(f"line {line_number}: {message}")
        self.line_number = line_number


class NotFoundError(LedgerError, FileNotFoundError):
    """The corpus (or an explicitly requested snapshot) does not exist."""


class EmptyModelError(LedgerError):
    """The ledger holds no vectors, so it has no dimension to report."""


class SnapshotError(LedgerError):
    """A snapshot file is truncated, has trailing garbage, or is inconsistent."""
