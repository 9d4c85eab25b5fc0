"""On-disk staging of spectrum scans while input files are merged.

Holding every scan of a large search in memory is not an option, so partially
built scans live in an embedded SQLite table keyed by scan number. SQLite keeps
an `INTEGER PRIMARY KEY` table as a B-tree on that key, which gives the
ascending replay needed for output for free.

Classes:
    ScanIdentifierMap: Allocates scan numbers to source spectrum identifiers.
    SqliteScanStore: The `ScanStore` implementation backed by SQLite.
"""

from dataclasses import dataclass, field
from pathlib import Path
import logging
import pickle
import sqlite3
import tempfile
from typing import Dict, Iterator, Optional, Sequence, Union

from mzid2pin.datasets.psm_dataset import PeptideSpectrumMatch, SpectrumScan
from mzid2pin.exceptions import ScanMergeError

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE scans (
    scan_number INTEGER PRIMARY KEY,
    experimental_mz REAL NOT NULL,
    payload BLOB NOT NULL
)
"""


@dataclass
class ScanIdentifierMap:
    """Maps source spectrum identifiers to sequentially assigned scan numbers.

    Numbers start at 0, grow by one per new identifier and are never reused.
    """

    scan_numbers: Dict[str, int] = field(default_factory=dict)
    next_scan_number: int = 0

    def get(self, source_id: str) -> Optional[int]:
        return self.scan_numbers.get(source_id)

    def assign(self, source_id: str) -> int:
        """Allocate the next scan number to a new identifier.

        Args:
            source_id: An identifier that has not been assigned yet.

        Returns:
            int: The allocated scan number.
        """
        if source_id in self.scan_numbers:
            raise KeyError(f"Spectrum identifier {source_id!r} already has a scan number")
        scan_number = self.next_scan_number
        self.scan_numbers[source_id] = scan_number
        self.next_scan_number += 1
        return scan_number

    def __contains__(self, source_id: str) -> bool:
        return source_id in self.scan_numbers

    def __len__(self) -> int:
        return len(self.scan_numbers)


class SqliteScanStore:
    """A `ScanStore` that keeps pickled `SpectrumScan` records in SQLite.

    The database is rebuilt from scratch every time the store is opened. When
    no path is given, a temporary file is used and removed on close.

    Args:
        path: Location of the backing database file, or None for a temporary file.
        scan_ids: The identifier map to allocate scan numbers from. A fresh map is
            created when omitted.
    """

    def __init__(
        self,
        path: Optional[Union[Path, str]] = None,
        scan_ids: Optional[ScanIdentifierMap] = None,
    ) -> None:
        self.path = Path(path) if path is not None else None
        self.scan_ids = scan_ids if scan_ids is not None else ScanIdentifierMap()
        self.database_path: Optional[Path] = None
        self._connection: Optional[sqlite3.Connection] = None
        self._temp_dir: Optional[tempfile.TemporaryDirectory] = None

    def open(self) -> "SqliteScanStore":
        """Create an empty database and connect to it."""
        if self._connection is not None:
            return self

        if self.path is None:
            self._temp_dir = tempfile.TemporaryDirectory(prefix="mzid2pin_")
            database_path = Path(self._temp_dir.name) / "scans.sqlite"
        else:
            database_path = self.path
            if database_path.exists():
                logger.info(f"Removing existing scan store at {database_path}")
                database_path.unlink()
            database_path.parent.mkdir(parents=True, exist_ok=True)

        logger.debug(f"Opening scan store at {database_path}")
        self._connection = sqlite3.connect(str(database_path))
        # The store is rebuilt on every run, so durability is not needed
        self._connection.execute("PRAGMA journal_mode = OFF")
        self._connection.execute("PRAGMA synchronous = OFF")
        self._connection.execute(_CREATE_TABLE)
        self.database_path = database_path
        return self

    def close(self) -> None:
        """Close the connection and remove the temporary database, if any."""
        if self._connection is not None:
            self._connection.commit()
            self._connection.close()
            self._connection = None
            logger.debug(f"Closed scan store holding {len(self.scan_ids)} scans")
        if self._temp_dir is not None:
            self._temp_dir.cleanup()
            self._temp_dir = None

    def __enter__(self) -> "SqliteScanStore":
        return self.open()

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise RuntimeError("The scan store is not open")
        return self._connection

    def get_or_create(self, source_id: str, experimental_mz: float) -> int:
        """Resolve the scan number of a spectrum, creating an empty scan on first sighting.

        Args:
            source_id: The spectrum identifier in the input document.
            experimental_mz: The precursor m/z reported for the spectrum.

        Returns:
            int: The scan number assigned to `source_id`.

        Raises:
            ScanMergeError: If the spectrum was seen before with a different m/z.
        """
        scan_number = self.scan_ids.get(source_id)
        if scan_number is None:
            scan_number = self.scan_ids.assign(source_id)
            scan = SpectrumScan(scan_number=scan_number, experimental_mz=experimental_mz)
            self.connection.execute(
                "INSERT INTO scans (scan_number, experimental_mz, payload) VALUES (?, ?, ?)",
                (scan_number, experimental_mz, self._serialize(scan)),
            )
            return scan_number

        row = self.connection.execute(
            "SELECT experimental_mz FROM scans WHERE scan_number = ?", (scan_number,)
        ).fetchone()
        if row is None:
            raise KeyError(f"Scan {scan_number} for {source_id!r} is missing from the store")
        if row[0] != experimental_mz:
            raise ScanMergeError(
                f"Spectrum {source_id!r} was recorded with experimentalMassToCharge "
                f"{row[0]} but is now reported with {experimental_mz}"
            )
        return scan_number

    def append_matches(
        self, scan_number: int, matches: Sequence[PeptideSpectrumMatch]
    ) -> None:
        """Append a batch of matches to a stored scan in one read-modify-write.

        Args:
            scan_number: A scan number previously returned by `get_or_create`.
            matches: The matches to append, in order.
        """
        scan = self.get(scan_number)
        scan.extend(matches)
        self.connection.execute(
            "UPDATE scans SET payload = ? WHERE scan_number = ?",
            (self._serialize(scan), scan_number),
        )

    def get(self, scan_number: int) -> SpectrumScan:
        row = self.connection.execute(
            "SELECT payload FROM scans WHERE scan_number = ?", (scan_number,)
        ).fetchone()
        if row is None:
            raise KeyError(f"Scan {scan_number} is missing from the store")
        return pickle.loads(row[0])

    def iterate_in_key_order(self) -> Iterator[SpectrumScan]:
        """Iterate once over all stored scans by ascending scan number.

        Returns:
            Iterator[SpectrumScan]: A lazy iterator; rows are fetched as it advances.
        """
        self.connection.commit()
        cursor = self.connection.execute("SELECT payload FROM scans ORDER BY scan_number")
        for (payload,) in cursor:
            yield pickle.loads(payload)

    def __len__(self) -> int:
        return self.connection.execute("SELECT COUNT(*) FROM scans").fetchone()[0]

    @staticmethod
    def _serialize(scan: SpectrumScan) -> bytes:
        return pickle.dumps(scan, protocol=pickle.HIGHEST_PROTOCOL)
