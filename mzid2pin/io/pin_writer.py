"""Serialization of converted scans to percolator-input XML.

Scans are written incrementally so that the document is never held in memory.
"""

import logging
import math
from typing import BinaryIO, Iterable

from lxml import etree

from mzid2pin.constants import (
    PERCOLATOR_IN_NAMESPACE,
    PERCOLATOR_IN_SCHEMA,
    XSI_NAMESPACE,
)
from mzid2pin.datasets.psm_dataset import PeptideSpectrumMatch, SpectrumScan
from mzid2pin.features.feature_vector import FeatureDescriptor
from mzid2pin.features.sequence_features import Enzyme

logger = logging.getLogger(__name__)


def _qname(tag: str) -> str:
    return f"{{{PERCOLATOR_IN_NAMESPACE}}}{tag}"


def format_double(value: float) -> str:
    """Format a float as an xs:double in its shortest round-trip representation."""
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "INF" if value > 0 else "-INF"
    return repr(value)


def format_bool(value: bool) -> str:
    return "true" if value else "false"


class PercolatorInWriter:
    """Writes an `experiment` document to a binary stream.

    Args:
        stream: Destination of the UTF-8 encoded document, e.g. `sys.stdout.buffer`.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self.stream = stream

    def write(
        self,
        enzyme: Enzyme,
        descriptor: FeatureDescriptor,
        scans: Iterable[SpectrumScan],
    ) -> int:
        """Write the complete document.

        Args:
            enzyme: The cleavage rule, restated as free text in the header.
            descriptor: The feature names, in vector order.
            scans: The scans, already in ascending scan number order.

        Returns:
            int: The number of scans written.
        """
        n_scans = 0
        with etree.xmlfile(self.stream, encoding="UTF-8") as xf:
            xf.write_declaration()
            with xf.element(
                _qname("experiment"),
                {f"{{{XSI_NAMESPACE}}}schemaLocation": f"{PERCOLATOR_IN_NAMESPACE} {PERCOLATOR_IN_SCHEMA}"},
                nsmap={None: PERCOLATOR_IN_NAMESPACE, "xsi": XSI_NAMESPACE},
            ):
                with xf.element(_qname("enzyme")):
                    xf.write(enzyme.description)
                self._write_feature_descriptions(xf, descriptor)
                for scan in scans:
                    self._write_scan(xf, scan)
                    n_scans += 1
        self.stream.flush()
        logger.info(f"Wrote {n_scans} scans.")
        return n_scans

    @staticmethod
    def _write_feature_descriptions(xf, descriptor: FeatureDescriptor) -> None:
        with xf.element(_qname("featureDescriptions")):
            for name in descriptor:
                with xf.element(_qname("featureDescription"), {"name": name}):
                    pass

    def _write_scan(self, xf, scan: SpectrumScan) -> None:
        with xf.element(
            _qname("fragSpectrumScan"),
            {
                "scan_number": str(scan.scan_number),
                "experimentalMassToCharge": format_double(scan.experimental_mz),
            },
        ):
            for psm in scan.matches:
                self._write_psm(xf, psm)

    @staticmethod
    def _write_psm(xf, psm: PeptideSpectrumMatch) -> None:
        attributes = {
            "id": psm.id,
            "isDecoy": format_bool(psm.is_decoy),
            "calculatedMassToCharge": format_double(psm.calculated_mz),
            "chargeState": str(psm.charge_state),
            "experimentalMassToCharge": format_double(psm.experimental_mz),
        }
        with xf.element(_qname("peptideSpectrumMatch"), attributes):
            with xf.element(_qname("features")):
                for value in psm.features:
                    with xf.element(_qname("feature")):
                        xf.write(format_double(value))
            with xf.element(_qname("peptide")):
                with xf.element(_qname("peptideSequence")):
                    xf.write(psm.peptide_sequence)
