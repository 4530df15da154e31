"""
Error types raised by SettleLedger
"""


class LedgerError(Exception):
    """Base class for every ledger error"""


class ZeroParticipantsError(LedgerError):
    """Equal split requested with no members and no pending participants"""


class InvalidSplitError(LedgerError, ValueError):
    """Custom shares missing, negative, or not summing exactly to the expense amount"""


class InvalidAmountError(LedgerError, ValueError):
    """Money value that is not positive or has more than two decimal places"""


class IntegrityViolationError(LedgerError):
    """A should-never-happen consistency check failed; the computation is aborted"""


class NotFoundError(LedgerError, KeyError):
    """Unknown participant, expense or settlement"""

    def __str__(self) -> str:
        # KeyError quotes its argument
        return str(self.args[0]) if self.args else ""


class InvalidOperationError(LedgerError):
    """Operation not allowed in the record's current state"""
