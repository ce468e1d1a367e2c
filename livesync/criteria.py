"""
Consolidation Criteria Combinator.

Maps the three independent grouping toggles to the single criteria literal
the backend's consolidate endpoint accepts. The seven non-empty subsets of
{currency pair, counterparty, book} map one-to-one onto the seven names;
the empty selection is not submittable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List

from core.exceptions import NoCriteriaSelectedError


class ConsolidationCriteria(str, Enum):
    CURRENCY_PAIR = "CURRENCY_PAIR"
    COUNTERPARTY = "COUNTERPARTY"
    BOOK = "BOOK"
    CURRENCY_PAIR_AND_COUNTERPARTY = "CURRENCY_PAIR_AND_COUNTERPARTY"
    CURRENCY_PAIR_AND_BOOK = "CURRENCY_PAIR_AND_BOOK"
    COUNTERPARTY_AND_BOOK = "COUNTERPARTY_AND_BOOK"
    ALL_CRITERIA = "ALL_CRITERIA"


# (currency_pair, counterparty, book) -> criteria
_COMBINATIONS: Dict[tuple, ConsolidationCriteria] = {
    (True, True, True): ConsolidationCriteria.ALL_CRITERIA,
    (True, True, False): ConsolidationCriteria.CURRENCY_PAIR_AND_COUNTERPARTY,
    (True, False, True): ConsolidationCriteria.CURRENCY_PAIR_AND_BOOK,
    (False, True, True): ConsolidationCriteria.COUNTERPARTY_AND_BOOK,
    (True, False, False): ConsolidationCriteria.CURRENCY_PAIR,
    (False, True, False): ConsolidationCriteria.COUNTERPARTY,
    (False, False, True): ConsolidationCriteria.BOOK,
}

_LABELS = {
    "currency_pair": "Currency Pair",
    "counterparty": "Counterparty",
    "book": "Book",
}

NO_CRITERIA_MESSAGE = "No criteria selected"


def combine(currency_pair: bool, counterparty: bool, book: bool) -> ConsolidationCriteria:
    """
    Combine the three toggles into one criteria value.

    Raises:
        NoCriteriaSelectedError: all three toggles are off
    """
    key = (bool(currency_pair), bool(counterparty), bool(book))
    try:
        return _COMBINATIONS[key]
    except KeyError:
        raise NoCriteriaSelectedError(NO_CRITERIA_MESSAGE) from None


@dataclass
class CriteriaSelection:
    """Toggle state of the consolidation dialog. Defaults to currency pair."""
    currency_pair: bool = True
    counterparty: bool = False
    book: bool = False

    def toggle(self, name: str) -> "CriteriaSelection":
        if name not in _LABELS:
            raise ValueError(f"Unknown criterion: {name}")
        setattr(self, name, not getattr(self, name))
        return self

    def selected(self) -> List[str]:
        return [_LABELS[name] for name in _LABELS if getattr(self, name)]

    @property
    def is_submittable(self) -> bool:
        return self.currency_pair or self.counterparty or self.book

    @property
    def criteria(self) -> ConsolidationCriteria:
        return combine(self.currency_pair, self.counterparty, self.book)

    @property
    def preview_text(self) -> str:
        selected = self.selected()
        if not selected:
            return NO_CRITERIA_MESSAGE
        if len(selected) == 1:
            return f"Group by {selected[0]}"
        if len(selected) == 2:
            return f"Group by {selected[0]} and {selected[1]}"
        return f"Group by {selected[0]}, {selected[1]}, and {selected[2]}"

    def to_request(self) -> Dict[str, str]:
        """Submission body; raises NoCriteriaSelectedError when empty."""
        return {"criteria": self.criteria.value}
