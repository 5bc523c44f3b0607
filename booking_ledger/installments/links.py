# booking_ledger/installments/links.py

"""
What funded an installment.

An installment is linked to at most one thing:

* `Unlinked` - nothing, the installment is open (or legacy data).
* `LedgerEntryLink(entry_id)` - settled 1:1 by that ledger entry.
* `ExternallyCovered` - closed by an out-of-plan payment whose money is already
  counted once in the ledger. Its `amount` must never be added to any paid
  total; only `paid_amount` (always 0 for this link) may be summed.
"""

from dataclasses import dataclass
from enum import Enum as PyEnum
from typing import Optional, Union


class LinkType(str, PyEnum):
    NONE = "none"
    LEDGER_ENTRY = "ledger_entry"
    EXTERNALLY_COVERED = "externally_covered"


@dataclass(frozen=True)
class Unlinked:
    link_type = LinkType.NONE


@dataclass(frozen=True)
class LedgerEntryLink:
    entry_id: Optional[int]  # None once the entry was removed out of band
    link_type = LinkType.LEDGER_ENTRY


@dataclass(frozen=True)
class ExternallyCovered:
    link_type = LinkType.EXTERNALLY_COVERED


InstallmentLink = Union[Unlinked, LedgerEntryLink, ExternallyCovered]

UNLINKED = Unlinked()
EXTERNALLY_COVERED = ExternallyCovered()
