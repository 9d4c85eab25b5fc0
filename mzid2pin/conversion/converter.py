"""Conversion of target and decoy mzIdentML files into one percolator-input document.

The conversion runs in two passes. The first pass scans every file for the
global charge range. The second pass loads the files one after another, builds
feature vectors for every match and merges matches of the same spectrum
identifier into one scan held in the scan store. The store is then replayed in
scan number order into the writer.
"""

from dataclasses import dataclass
from itertools import chain
from pathlib import Path
import logging
from typing import List, Optional, Sequence, Union

from mzid2pin.constants import SEQUENCE_COLLECTION, SPECTRUM_IDENTIFICATION_RESULT
from mzid2pin.conversion.charge_range import scan_charge_ranges
from mzid2pin.data_types import ChargeRange, MatchCandidate, PeptideLookup
from mzid2pin.datasets.interfaces import ScanStore
from mzid2pin.datasets.psm_dataset import PeptideSpectrumMatch
from mzid2pin.exceptions import (
    ConversionError,
    MalformedInputError,
    MissingFieldError,
)
from mzid2pin.features.feature_vector import (
    FeatureDescriptor,
    FeatureOptions,
    FeatureVectorBuilder,
)
from mzid2pin.io.mzid_reader import MzIdentMLReader, build_peptide_lookup
from mzid2pin.io.pin_writer import PercolatorInWriter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InputFile:
    """An input document and the role of its matches."""

    path: Path
    is_decoy: bool

    @property
    def role(self) -> str:
        return "decoy" if self.is_decoy else "target"


def collect_inputs(
    target_files: Sequence[Union[Path, str]], decoy_files: Sequence[Union[Path, str]]
) -> List[InputFile]:
    """List the inputs in processing order, targets first."""
    return [InputFile(Path(path), is_decoy=False) for path in target_files] + [
        InputFile(Path(path), is_decoy=True) for path in decoy_files
    ]


class MzIdentMLConverter:
    """Drives the two-pass conversion of mzIdentML files.

    Args:
        options: The feature switches.
        store: The scan store the loaded matches are merged into.
    """

    def __init__(self, options: FeatureOptions, store: ScanStore) -> None:
        self.options = options
        self.store = store
        self.feature_descriptor: Optional[FeatureDescriptor] = None

    def scan_charge_range(self, inputs: Sequence[InputFile]) -> ChargeRange:
        """Run the first pass over all inputs."""
        logger.info(f"Scanning charge states of {len(inputs)} files.")
        charge_range = scan_charge_ranges([input_file.path for input_file in inputs])
        logger.info(
            f"Charge states range from {charge_range.minimum} to {charge_range.maximum}."
        )
        return charge_range

    def load(self, input_file: InputFile, charge_range: ChargeRange) -> int:
        """Run the second pass over one input and merge its matches into the store.

        Args:
            input_file: The file to load.
            charge_range: The global charge range from the first pass.

        Returns:
            int: The number of spectrum results read from the file.

        Raises:
            ConversionError: For any malformed or inconsistent input. The error
                names the offending file.
        """
        logger.info(f"Loading {input_file.role} file {input_file.path}")
        try:
            with MzIdentMLReader(input_file.path) as reader:
                n_results = self._load_results(reader, input_file, charge_range)
        except ConversionError as exc:
            if exc.source is None:
                exc.source = input_file.path
            raise
        logger.info(f"Loaded {n_results} spectrum results from {input_file.path}")
        return n_results

    def _load_results(
        self, reader: MzIdentMLReader, input_file: InputFile, charge_range: ChargeRange
    ) -> int:
        sequence_collection = reader.skip_to(SEQUENCE_COLLECTION)
        if sequence_collection is None:
            raise MalformedInputError("No SequenceCollection found")
        peptides = build_peptide_lookup(sequence_collection)
        logger.debug(f"Read {len(peptides)} peptides from {input_file.path}")

        first = reader.skip_to(SPECTRUM_IDENTIFICATION_RESULT)
        if first is None:
            raise MissingFieldError("No SpectrumIdentificationResult found")
        results = reader.iter_results(first)
        first_result = next(results)

        descriptor = FeatureDescriptor.from_match(
            first_result.matches[0], charge_range, self.options
        )
        if self.feature_descriptor is None:
            logger.info(f"Using {len(descriptor)} features: {', '.join(descriptor)}")
            self.feature_descriptor = descriptor
        else:
            self.feature_descriptor.check_compatible(descriptor)
        builder = FeatureVectorBuilder(self.feature_descriptor, charge_range, self.options)

        n_results = 0
        for result in chain([first_result], results):
            scan_number = self.store.get_or_create(result.id, result.experimental_mz)
            psms = [
                self._create_psm(match, peptides, builder, input_file.is_decoy)
                for match in result.matches
            ]
            self.store.append_matches(scan_number, psms)
            n_results += 1
        return n_results

    @staticmethod
    def _create_psm(
        match: MatchCandidate,
        peptides: PeptideLookup,
        builder: FeatureVectorBuilder,
        is_decoy: bool,
    ) -> PeptideSpectrumMatch:
        if match.peptide_ref is None:
            raise MissingFieldError(
                f"SpectrumIdentificationItem {match.id!r} has no peptide_ref"
            )
        sequence = peptides.get(match.peptide_ref)
        if sequence is None:
            raise MissingFieldError(
                f"SpectrumIdentificationItem {match.id!r} refers to unknown peptide "
                f"{match.peptide_ref!r}"
            )
        return PeptideSpectrumMatch(
            id=match.id,
            is_decoy=is_decoy,
            peptide_sequence=sequence,
            calculated_mz=match.calculated_mz,
            charge_state=match.charge_state,
            experimental_mz=match.experimental_mz,
            features=builder.build(match, sequence, is_decoy),
        )

    def convert(
        self,
        target_files: Sequence[Union[Path, str]],
        decoy_files: Sequence[Union[Path, str]],
        writer: PercolatorInWriter,
    ) -> int:
        """Convert the inputs and write the merged document.

        Nothing is written unless every file loads successfully.

        Args:
            target_files: Paths of the target search results.
            decoy_files: Paths of the decoy search results.
            writer: Destination of the merged document.

        Returns:
            int: The number of scans written.
        """
        inputs = collect_inputs(target_files, decoy_files)
        if not inputs:
            raise ConversionError("At least one target or decoy file is required")

        charge_range = self.scan_charge_range(inputs)
        for input_file in inputs:
            self.load(input_file, charge_range)

        return writer.write(
            self.options.enzyme,
            self.feature_descriptor,
            self.store.iterate_in_key_order(),
        )
