"""
Errors Module

Exceptions raised by the ledger core when it runs in strict mode.

By default the balance calculator and the debt simplifier are total
functions: unknown member ids and leftover residue are dropped quietly.
Passing strict=True turns those cases into the errors below.
"""


class LedgerError(ValueError):
    """Base class for ledger consistency errors."""


class UnknownMemberError(LedgerError):
    """A record references a member id that is not in the group."""

    def __init__(self, member_id: str, record_kind: str):
        self.member_id = member_id
        self.record_kind = record_kind
        super().__init__(f"{record_kind} references unknown member '{member_id}'")


class UnbalancedLedgerError(LedgerError):
    """Debts and credits did not cancel out during simplification."""

    def __init__(self, residue: dict):
        self.residue = residue
        super().__init__(f"Unsettled residue after simplification: {residue}")
