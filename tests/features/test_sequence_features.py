"""Unit tests for sequence-derived feature helpers."""

import numpy as np
import pytest

from mzid2pin.constants import AMINO_ACIDS
from mzid2pin.features.sequence_features import (
    ISOTOPE_SPACING,
    Enzyme,
    add_flanks,
    amino_acid_frequencies,
    count_ptms,
    is_pngasef,
    mass_difference,
    peptide_length,
    strip_flanks,
)


class TestEnzyme:
    """Test cleavage rules."""

    @pytest.mark.parametrize(
        "enzyme,n_residue,c_residue,expected",
        [
            (Enzyme.TRYPSIN, "K", "A", True),
            (Enzyme.TRYPSIN, "R", "G", True),
            (Enzyme.TRYPSIN, "K", "P", False),
            (Enzyme.TRYPSIN, "A", "K", False),
            (Enzyme.CHYMOTRYPSIN, "F", "A", True),
            (Enzyme.CHYMOTRYPSIN, "W", "P", False),
            (Enzyme.CHYMOTRYPSIN, "K", "A", False),
            (Enzyme.ELASTASE, "V", "S", True),
            (Enzyme.ELASTASE, "F", "S", False),
            (Enzyme.NO_ENZYME, "A", "P", True),
        ],
    )
    def test_is_enzymatic(self, enzyme, n_residue, c_residue, expected):
        """Test single bonds against each rule."""
        assert enzyme.is_enzymatic(n_residue, c_residue) is expected

    def test_protein_terminus_is_enzymatic(self):
        """Test that a flank at either side always counts as a cleavage site."""
        assert Enzyme.TRYPSIN.is_enzymatic("-", "A")
        assert Enzyme.TRYPSIN.is_enzymatic("A", "-")

    def test_count_enzymatic(self):
        """Test counting internal cleavage sites."""
        assert Enzyme.TRYPSIN.count_enzymatic("PEPTIDE") == 0
        assert Enzyme.TRYPSIN.count_enzymatic("AKDRPK") == 1
        assert Enzyme.CHYMOTRYPSIN.count_enzymatic("AFGWA") == 2

    def test_description(self):
        """Test header text of each enzyme."""
        assert Enzyme.NO_ENZYME.description == "no enzyme"
        assert Enzyme.TRYPSIN.description == "trypsin"
        assert Enzyme("chymotrypsin") is Enzyme.CHYMOTRYPSIN

    def test_unknown_enzyme(self):
        """Test that an unknown enzyme name is rejected."""
        with pytest.raises(ValueError):
            Enzyme("pepsin")


class TestFlankedPeptides:
    """Test flanked notation helpers."""

    def test_add_and_strip_flanks(self):
        """Test the default flanks."""
        assert add_flanks("PEPTIDE") == "-.PEPTIDE.-"
        assert strip_flanks("K.PEPTIDE.A") == "PEPTIDE"

    def test_peptide_length_ignores_markers(self):
        """Test that PTM markers do not count as residues."""
        assert peptide_length("-.PEPTIDE.-") == 7
        assert peptide_length("-.PEPT#IDEM*.-") == 8

    def test_count_ptms(self):
        """Test counting modification markers."""
        assert count_ptms("-.PEPTIDE.-") == 0
        assert count_ptms("-.S#EPM*TI@DE.-") == 3


class TestIsPngasef:
    """Test N-glycosylation sequon detection."""

    def test_target_sequon(self):
        """Test N*-X-S/T on a target."""
        assert is_pngasef("-.AN*GTK.-", is_decoy=False) == 1.0
        assert is_pngasef("-.AN*GSK.-", is_decoy=False) == 1.0

    def test_target_sequon_with_modified_middle(self):
        """Test that a modification marker on the middle residue is skipped."""
        assert is_pngasef("-.AN*G#TK.-", is_decoy=False) == 1.0

    def test_target_without_sequon(self):
        """Test that N* without S/T two residues later is not flagged."""
        assert is_pngasef("-.AN*GAK.-", is_decoy=False) == 0.0
        assert is_pngasef("-.ANGTK.-", is_decoy=False) == 0.0

    def test_decoy_sequon_is_reversed(self):
        """Test that decoys look for the motif before the asparagine."""
        assert is_pngasef("-.KTGN*A.-", is_decoy=True) == 1.0
        assert is_pngasef("-.AN*GTK.-", is_decoy=True) == 0.0


class TestAminoAcidFrequencies:
    """Test composition features."""

    def test_frequencies(self):
        """Test that frequencies are relative counts in alphabetical residue order."""
        frequencies = amino_acid_frequencies("-.PEPTIDE.-")

        assert len(frequencies) == len(AMINO_ACIDS) == 20
        assert frequencies.sum() == pytest.approx(1.0)
        assert frequencies[AMINO_ACIDS.index("P")] == pytest.approx(2 / 7)
        assert frequencies[AMINO_ACIDS.index("E")] == pytest.approx(2 / 7)
        assert frequencies[AMINO_ACIDS.index("K")] == 0.0

    def test_empty_peptide(self):
        """Test that an empty peptide yields zeros instead of NaN."""
        frequencies = amino_acid_frequencies("-..-")
        assert np.array_equal(frequencies, np.zeros(20))


class TestMassDifference:
    """Test the precursor mass difference."""

    def test_scaled_by_charge(self):
        """Test that the m/z difference is converted to a mass difference."""
        assert mass_difference(501.0, 500.0, 2) == pytest.approx(2.0)
        assert mass_difference(499.0, 500.0, 3) == pytest.approx(-3.0)

    def test_isotope_correction(self):
        """Test that whole isotope errors are removed."""
        experimental = 500.0 + (ISOTOPE_SPACING + 0.01) / 2
        corrected = mass_difference(experimental, 500.0, 2, isotope_correction=True)
        assert corrected == pytest.approx(0.01)

    def test_isotope_correction_keeps_small_errors(self):
        """Test that a difference below half an isotope spacing is unchanged."""
        assert mass_difference(
            500.1, 500.0, 2, isotope_correction=True
        ) == pytest.approx(0.2)

    def test_invalid_charge(self):
        """Test that non-positive charges are rejected."""
        with pytest.raises(ValueError):
            mass_difference(500.0, 500.0, 0)
