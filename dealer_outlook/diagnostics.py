"""
Snapshot Diagnostics
====================
Collects the records each aggregation pass had to leave out, keyed by issue
code. Record-level problems never raise; they are counted here so operators
can chase the data owner about them.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List

import pandas as pd

logger = logging.getLogger(__name__)


# Issue code definitions
ISSUE_CODES = {
    # Identity Issues (CHS / DLR)
    "CHS001": "Order has no chassis (unallocated slot)",
    "CHS002": "Chassis not found in schedule",
    "DLR001": "Record has no usable dealer",

    # Date Issues (DT)
    "DT001": "Missing or unparseable forecast production date",
    "DT002": "Missing or unparseable handover date",
    "DT003": "Missing or unparseable PGI date",

    # Window Issues (WIN)
    "WIN001": "Arrival outside forecast horizon",
    "WIN002": "Handover older than long window",

    # Configuration Issues (CFG)
    "CFG001": "Invalid tier multiplier replaced with 0",
    "CFG002": "Model assigned to unknown tier",
    "CFG003": "Invalid model range target replaced with 0",
    "CFG004": "Invalid tier unit bound or share target ignored",
}

# Codes that describe expected filtering rather than dirty data
INFORMATIONAL_CODES = {"WIN001", "WIN002"}


def get_issue_description(code: str) -> str:
    """Get description for an issue code."""
    return ISSUE_CODES.get(code, "Unknown issue")


@dataclass
class Diagnostics:
    """Per-pass collector of excluded records."""
    max_samples: int = 5
    counts: Counter = field(default_factory=Counter)
    samples: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)

    def record(self, code: str, **details):
        """Count one occurrence of ``code`` and keep a few sample details."""
        self.counts[code] += 1
        bucket = self.samples.setdefault(code, [])
        if len(bucket) < self.max_samples:
            bucket.append(details)
        logger.debug("%s %s: %s", code, get_issue_description(code), details)

    def count(self, code: str) -> int:
        return self.counts.get(code, 0)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def data_issue_total(self) -> int:
        """Count of excluded records, ignoring informational window filters."""
        return sum(n for code, n in self.counts.items() if code not in INFORMATIONAL_CODES)

    def merge(self, other: "Diagnostics"):
        for code, n in other.counts.items():
            self.counts[code] += n
            bucket = self.samples.setdefault(code, [])
            room = self.max_samples - len(bucket)
            if room > 0:
                bucket.extend(other.samples.get(code, [])[:room])

    def summary(self) -> List[Dict[str, Any]]:
        """One dict per issue code, most frequent first."""
        return [
            {"Code": code, "Description": get_issue_description(code), "Count": n}
            for code, n in self.counts.most_common()
        ]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.summary(), columns=["Code", "Description", "Count"])

