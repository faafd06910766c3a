"""
Plain-Label Vocabulary

Controlled vocabulary of free-text classifications offered as suggestions
while the user types a label without a ":" delimiter, plus the lines of
business the registry is partitioned by.

Usage:
    from tdm_classification.models.vocabulary import PLAIN_LABEL_VOCABULARY, match_plain_labels

    match_plain_labels("card", already_chosen=[])  # ["Active credit card", "Card with offer", ...]
"""

from enum import Enum
from typing import Final, Iterable, List, Optional, Sequence, Tuple


class LineOfBusiness(str, Enum):
    """Business lines that scope rule groups and recipes."""
    CARD = "CARD"
    BANK = "BANK"
    FS = "FS"
    DFS = "DFS"


LOB_VALUES: Final[Tuple[str, ...]] = tuple(member.value for member in LineOfBusiness)


PLAIN_LABEL_VOCABULARY: Final[Tuple[str, ...]] = (
    "Active account",
    "Active credit card",
    "Active user",
    "Authorized user",
    "Biometric enabled",
    "Business account",
    "Card with offer",
    "Compliance verified",
    "Customer profile",
    "Document access",
    "Email access",
    "Expired account",
    "Expired credit card",
    "High balance",
    "High value",
    "Inactive credit card",
    "Insufficient funds",
    "International account",
    "Low balance account",
    "Merchant account",
    "MFA enabled account",
    "Mobile app user",
    "Mobile device",
    "Multi-user access",
    "New card",
    "Payment processing",
    "Payment request",
    "Phone verified",
    "Premium account",
    "Primary user",
    "Security questions setup",
    "Statement period data",
    "To be activated",
    "User account",
    "Verified customer",
)


def infer_line_of_business(text: str) -> Optional[str]:
    """
    Find the line of business a generated key starts with.

    The longest matching value wins so that "DFS..." is not read as "FS".

    Examples:
        >>> infer_line_of_business("DFS1700000000000")
        'DFS'
        >>> infer_line_of_business("Payments") is None
        True
    """
    candidates = [lob for lob in LOB_VALUES if text.startswith(lob)]
    if not candidates:
        return None
    return max(candidates, key=len)


def match_plain_labels(
    partial_text: str,
    already_chosen: Iterable[str],
    vocabulary: Sequence[str] = PLAIN_LABEL_VOCABULARY,
) -> List[str]:
    """
    Case-insensitive substring matches against the vocabulary.

    Already-chosen values are compared case-insensitively because committed
    Plain Labels are stored lowercased.
    """
    needle = partial_text.strip().lower()
    if not needle:
        return []
    chosen = {c.lower() for c in already_chosen}
    return [
        label for label in vocabulary
        if needle in label.lower() and label.lower() not in chosen
    ]
