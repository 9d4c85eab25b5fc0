"""Defines the interface of the scan store used to merge matches across files.

Keeping the contract narrow isolates the conversion logic from the storage engine.
"""

from typing import Iterator, Protocol, Sequence

from mzid2pin.datasets.psm_dataset import PeptideSpectrumMatch, SpectrumScan


class ScanStore(Protocol):
    """Protocol for key-ordered stores of partially built spectrum scans.

    Scans are keyed by a scan number allocated on the first sighting of a
    source spectrum identifier. Implementations are used from a single thread.
    """

    def get_or_create(self, source_id: str, experimental_mz: float) -> int:
        """Resolve the scan number of a spectrum, creating an empty scan on first sighting.

        Args:
            source_id: The spectrum identifier in the input document.
            experimental_mz: The precursor m/z reported for the spectrum.

        Returns:
            int: The scan number assigned to `source_id`.
        """
        ...

    def append_matches(
        self, scan_number: int, matches: Sequence[PeptideSpectrumMatch]
    ) -> None:
        """Append a batch of matches to a stored scan.

        Args:
            scan_number: A scan number previously returned by `get_or_create`.
            matches: The matches to append, in order.
        """
        ...

    def iterate_in_key_order(self) -> Iterator[SpectrumScan]:
        """Iterate once over all stored scans by ascending scan number."""
        ...
