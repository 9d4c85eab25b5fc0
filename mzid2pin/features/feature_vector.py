"""Feature vectors of peptide-spectrum matches.

The downstream scorer reads features by position, so the layout below is fixed:

    deltCn, IonFrac, Mass, PepLen,
    Charge<min> .. Charge<max>,
    [enzN, enzC, enzInt]              (unless the enzyme is `no_enzyme`)
    dM, absdM,
    [ptm]                             (if `ptm`)
    [PNGaseF]                         (if `pngasef`)
    [A-Freq .. Y-Freq]                (if `aa_freq`)
    <valued cvParam names>, <valued userParam names>

The trailing search-engine attributes are taken from the first match of the
first file and every later match must provide the same number of values.
"""

from dataclasses import dataclass
from typing import Iterator, List, Tuple, Union

import numpy as np

from mzid2pin.constants import AMINO_ACIDS
from mzid2pin.data_types import ChargeRange, FeatureVector, MatchCandidate
from mzid2pin.exceptions import FeatureSchemaError, MissingFieldError
from mzid2pin.features.sequence_features import (
    Enzyme,
    add_flanks,
    amino_acid_frequencies,
    count_ptms,
    is_pngasef,
    mass_difference,
    peptide_length,
)


@dataclass
class FeatureOptions:
    """Switches for the optional feature blocks.

    Args:
        enzyme: Cleavage rule used for the enzymatic boundary features.
        ptm: Add the post-translational modification count.
        pngasef: Add the N-glycosylation sequon flag.
        aa_freq: Add amino acid composition frequencies.
        isotope_correction: Remove whole isotope errors from the mass difference.
    """

    enzyme: Union[Enzyme, str] = Enzyme.TRYPSIN
    ptm: bool = False
    pngasef: bool = False
    aa_freq: bool = False
    isotope_correction: bool = False

    def __post_init__(self):
        self.enzyme = Enzyme(self.enzyme)


def sequence_feature_names(
    charge_range: ChargeRange, options: FeatureOptions
) -> List[str]:
    """Names of the features computed from the match and its peptide.

    Args:
        charge_range: The global charge range, one indicator per charge.
        options: The active feature switches.

    Returns:
        List[str]: The feature names, in vector order.
    """
    names = ["deltCn", "IonFrac", "Mass", "PepLen"]
    names.extend(f"Charge{charge}" for charge in charge_range)
    if options.enzyme is not Enzyme.NO_ENZYME:
        names.extend(["enzN", "enzC", "enzInt"])
    names.extend(["dM", "absdM"])
    if options.ptm:
        names.append("ptm")
    if options.pngasef:
        names.append("PNGaseF")
    if options.aa_freq:
        names.extend(f"{residue}-Freq" for residue in AMINO_ACIDS)
    return names


@dataclass(frozen=True)
class FeatureDescriptor:
    """The ordered feature names shared by every match of a conversion."""

    names: Tuple[str, ...]
    n_attributes: int

    @classmethod
    def from_match(
        cls,
        match: MatchCandidate,
        charge_range: ChargeRange,
        options: FeatureOptions,
    ) -> "FeatureDescriptor":
        """Derive the descriptor from a reference match.

        Args:
            match: The first match of the first result of a file.
            charge_range: The global charge range.
            options: The active feature switches.

        Returns:
            FeatureDescriptor: The sequence feature names followed by the names of
                the match's valued parameters.
        """
        attribute_names = match.attribute_names()
        names = sequence_feature_names(charge_range, options) + attribute_names
        return cls(names=tuple(names), n_attributes=len(attribute_names))

    def __len__(self) -> int:
        return len(self.names)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def check_compatible(self, other: "FeatureDescriptor") -> None:
        """Require another descriptor to list the same features in the same order.

        Raises:
            FeatureSchemaError: If the descriptors differ.
        """
        if len(other) != len(self):
            raise FeatureSchemaError(
                f"Feature list has {len(other)} features, expected {len(self)} "
                "as in the previously loaded file"
            )
        for position, (expected, found) in enumerate(zip(self.names, other.names)):
            if expected != found:
                raise FeatureSchemaError(
                    f"Feature {position} is named {found!r}, expected {expected!r} "
                    "as in the previously loaded file"
                )


class FeatureVectorBuilder:
    """Builds feature vectors laid out according to a `FeatureDescriptor`.

    Args:
        descriptor: The established feature layout.
        charge_range: The global charge range.
        options: The active feature switches.
    """

    def __init__(
        self,
        descriptor: FeatureDescriptor,
        charge_range: ChargeRange,
        options: FeatureOptions,
    ) -> None:
        self.descriptor = descriptor
        self.charge_range = charge_range
        self.options = options

    def build(
        self, match: MatchCandidate, peptide_sequence: str, is_decoy: bool
    ) -> FeatureVector:
        """Compute the feature vector of one match.

        Args:
            match: The candidate match.
            peptide_sequence: The unflanked sequence the match refers to.
            is_decoy: Whether the match comes from a decoy file.

        Returns:
            FeatureVector: One value per name in the descriptor.

        Raises:
            MissingFieldError: If the match has no calculated m/z.
            FeatureSchemaError: If the match's valued parameters do not line up
                with the descriptor.
        """
        if match.calculated_mz is None:
            raise MissingFieldError(
                f"SpectrumIdentificationItem {match.id!r} has no calculatedMassToCharge"
            )

        enzyme = self.options.enzyme
        flanked = add_flanks(peptide_sequence)
        features: List[float] = [
            0.0,  # deltCn
            0.0,  # IonFrac
            match.experimental_mz * match.charge_state,
            float(peptide_length(flanked)),
        ]
        features.extend(
            1.0 if match.charge_state == charge else 0.0 for charge in self.charge_range
        )
        if enzyme is not Enzyme.NO_ENZYME:
            features.append(1.0 if enzyme.is_enzymatic(flanked[0], flanked[2]) else 0.0)
            features.append(
                1.0 if enzyme.is_enzymatic(flanked[-3], flanked[-1]) else 0.0
            )
            features.append(float(enzyme.count_enzymatic(peptide_sequence)))

        delta = mass_difference(
            match.experimental_mz,
            match.calculated_mz,
            match.charge_state,
            isotope_correction=self.options.isotope_correction,
        )
        features.extend([delta, abs(delta)])

        if self.options.ptm:
            features.append(float(count_ptms(flanked)))
        if self.options.pngasef:
            features.append(is_pngasef(flanked, is_decoy))
        if self.options.aa_freq:
            features.extend(amino_acid_frequencies(flanked))

        attribute_values = match.attribute_values()
        if len(attribute_values) != self.descriptor.n_attributes:
            raise FeatureSchemaError(
                f"SpectrumIdentificationItem {match.id!r} has {len(attribute_values)} "
                f"valued parameters, expected {self.descriptor.n_attributes}"
            )
        features.extend(attribute_values)

        vector = np.asarray(features, dtype=np.float64)
        if len(vector) != len(self.descriptor):
            raise FeatureSchemaError(
                f"SpectrumIdentificationItem {match.id!r} produced {len(vector)} "
                f"features, expected {len(self.descriptor)}"
            )
        return vector
