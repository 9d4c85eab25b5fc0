from dataclasses import dataclass, field
from typing import Iterable, List

import numpy as np

from mzid2pin.data_types import FeatureVector


@dataclass
class PeptideSpectrumMatch:
    """A peptide-spectrum match annotated with its feature vector."""

    id: str
    is_decoy: bool
    peptide_sequence: str
    calculated_mz: float
    charge_state: int
    experimental_mz: float
    features: FeatureVector

    def __post_init__(self):
        self.features = np.asarray(self.features, dtype=np.float64)


@dataclass
class SpectrumScan:
    """All matches, target and decoy, recorded for one spectrum."""

    scan_number: int
    experimental_mz: float
    matches: List[PeptideSpectrumMatch] = field(default_factory=list)

    def extend(self, matches: Iterable[PeptideSpectrumMatch]) -> None:
        self.matches.extend(matches)

    def __getitem__(self, index: int) -> PeptideSpectrumMatch:
        """Return the match at an index.

        Args:
            index (int):
                The position of the match within the scan.

        Returns:
            PeptideSpectrumMatch:
                The match at the index.
        """
        return self.matches[index]

    def __len__(self) -> int:
        return len(self.matches)
