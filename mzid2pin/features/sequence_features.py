"""Sequence-derived helpers used to build match features.

Peptides are handled in flanked notation, `N.PEPTIDE.C`, where `N` and `C` are
the residues before and after the peptide in the protein. mzIdentML does not
report flanks, so converted peptides are always written as `-.PEPTIDE.-`.
"""

from enum import Enum
from typing import FrozenSet

import numpy as np
from pyteomics.mass import nist_mass

from mzid2pin.constants import AMINO_ACIDS, FLANK, PTM_MARKERS
from mzid2pin.data_types import FeatureVector

# Spacing between consecutive isotopic peaks of a peptide
ISOTOPE_SPACING = nist_mass["C"][13][0] - nist_mass["C"][12][0]
MAX_ISOTOPE_ERROR = 4

_AMINO_ACID_INDEX = {residue: index for index, residue in enumerate(AMINO_ACIDS)}


class Enzyme(str, Enum):
    """Cleavage rules used to decide whether a peptide terminus is a proper cut site."""

    NO_ENZYME = "no_enzyme"
    ELASTASE = "elastase"
    CHYMOTRYPSIN = "chymotrypsin"
    TRYPSIN = "trypsin"

    @property
    def description(self) -> str:
        """The free-text name written to the output header."""
        return "no enzyme" if self is Enzyme.NO_ENZYME else self.value

    @property
    def cleaves_after(self) -> FrozenSet[str]:
        return _CLEAVAGE_RESIDUES[self]

    def is_enzymatic(self, n_residue: str, c_residue: str) -> bool:
        """Check whether the bond between two residues is a cleavage site.

        A protein terminus (`-`) always counts as a valid site, and no enzyme
        other than `NO_ENZYME` cuts before a proline.

        Args:
            n_residue: The residue on the N-terminal side of the bond.
            c_residue: The residue on the C-terminal side of the bond.

        Returns:
            bool: True if the enzyme cleaves the bond.
        """
        if self is Enzyme.NO_ENZYME:
            return True
        if n_residue == FLANK or c_residue == FLANK:
            return True
        return n_residue in self.cleaves_after and c_residue != "P"

    def count_enzymatic(self, peptide: str) -> int:
        """Count the internal bonds of a peptide the enzyme would cleave."""
        return sum(
            self.is_enzymatic(peptide[index - 1], peptide[index])
            for index in range(1, len(peptide))
        )


_CLEAVAGE_RESIDUES = {
    Enzyme.NO_ENZYME: frozenset(),
    Enzyme.ELASTASE: frozenset("LVAG"),
    Enzyme.CHYMOTRYPSIN: frozenset("FHWYLM"),
    Enzyme.TRYPSIN: frozenset("KR"),
}


def add_flanks(peptide: str, n_flank: str = FLANK, c_flank: str = FLANK) -> str:
    return f"{n_flank}.{peptide}.{c_flank}"


def strip_flanks(flanked_peptide: str) -> str:
    return flanked_peptide[2:-2]


def peptide_length(flanked_peptide: str) -> int:
    """Count the amino acids of a flanked peptide, ignoring flanks and PTM markers."""
    return sum(
        residue in _AMINO_ACID_INDEX for residue in strip_flanks(flanked_peptide)
    )


def count_ptms(flanked_peptide: str) -> int:
    """Count the modification markers (`#`, `*`, `@`) in a flanked peptide."""
    return sum(residue in PTM_MARKERS for residue in strip_flanks(flanked_peptide))


def is_pngasef(flanked_peptide: str, is_decoy: bool) -> float:
    """Flag peptides with a deamidated asparagine inside an N-glycosylation sequon.

    A PNGase F treated site is written as `N*` and must be part of an
    N-X-[ST] motif. Decoys are reversed sequences, so for them the motif is
    searched for in the opposite direction.

    Args:
        flanked_peptide: The peptide in flanked notation.
        is_decoy: Whether the peptide comes from the decoy set.

    Returns:
        float: 1.0 if a sequon is found, 0.0 otherwise.
    """
    position = flanked_peptide.find("N*")
    while position != -1:
        if is_decoy:
            candidate = position - 2
            if candidate >= 0 and flanked_peptide[candidate] == "#":
                candidate -= 1
        else:
            candidate = position + 3
            if candidate < len(flanked_peptide) and flanked_peptide[candidate] == "#":
                candidate += 1
        if 0 <= candidate < len(flanked_peptide) and flanked_peptide[candidate] in "ST":
            return 1.0
        position = flanked_peptide.find("N*", position + 1)
    return 0.0


def amino_acid_frequencies(flanked_peptide: str) -> FeatureVector:
    """Compute the relative frequency of each standard amino acid in a peptide.

    Returns:
        FeatureVector: One value per residue in `AMINO_ACIDS`, summing to 1 for
            a non-empty peptide.
    """
    counts = np.zeros(len(AMINO_ACIDS), dtype=np.float64)
    for residue in strip_flanks(flanked_peptide):
        index = _AMINO_ACID_INDEX.get(residue)
        if index is not None:
            counts[index] += 1
    total = counts.sum()
    return counts / total if total > 0 else counts


def mass_difference(
    experimental_mz: float,
    calculated_mz: float,
    charge: int,
    isotope_correction: bool = False,
) -> float:
    """Compute the observed minus calculated precursor mass.

    Args:
        experimental_mz: The measured precursor m/z.
        calculated_mz: The theoretical m/z of the matched peptide.
        charge: The precursor charge state.
        isotope_correction: Whether to remove whole isotope errors, i.e. pick the
            shift by up to `MAX_ISOTOPE_ERROR` isotope spacings with the smallest
            absolute difference.

    Returns:
        float: The signed mass difference in Da.
    """
    if charge <= 0:
        raise ValueError(f"Charge must be positive, got {charge}")
    delta = (experimental_mz - calculated_mz) * charge
    if isotope_correction:
        delta = min(
            (delta - isotope * ISOTOPE_SPACING for isotope in range(MAX_ISOTOPE_ERROR + 1)),
            key=abs,
        )
    return delta
