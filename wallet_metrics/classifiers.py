# classifiers.py
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

from wallet_metrics.config import KNOWN_DEXES


@dataclass(frozen=True)
class DexMatch:
    dex: Optional[str] = None
    is_liquidity_pool: bool = False


NO_MATCH = DexMatch()


class DexClassifier:
    """
    Maps a free-text counterparty label to a DEX.

    Rules are (dex name, pool markers) pairs checked in order; the first dex
    name found in the lower-cased label wins. Pool markers are matched
    against the label as written.
    """

    def __init__(self, rules: Sequence[Tuple[str, Sequence[str]]] = KNOWN_DEXES):
        self.rules = [(name.lower(), tuple(markers)) for name, markers in rules]

    def classify(self, label: Optional[str]) -> DexMatch:
        if not label:
            return NO_MATCH

        label_lower = label.lower()
        for name, markers in self.rules:
            if name in label_lower:
                return DexMatch(
                    dex=name,
                    is_liquidity_pool=any(marker in label for marker in markers),
                )

        return NO_MATCH


def counterparty_label(counterparty: dict) -> str:
    """Labels come back as a list of strings, the first one is the display label."""
    label: Any = counterparty.get("counterparty_address_label")
    if isinstance(label, (list, tuple)):
        label = label[0] if label else ""
    return label if isinstance(label, str) else ""
