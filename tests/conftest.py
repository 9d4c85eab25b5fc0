"""Shared fixtures that write small mzIdentML documents."""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

MZIDENTML_NAMESPACE = "http://psidev.info/psi/pi/mzIdentML/1.1"


def make_item(
    item_id: str,
    peptide: Optional[str],
    charge: int = 2,
    experimental_mz: float = 500.0,
    calculated_mz: Optional[float] = 499.0,
    cv_params: Optional[List[tuple]] = None,
    user_params: Optional[List[tuple]] = None,
    peptide_ref_attribute: str = "peptide_ref",
) -> Dict[str, Any]:
    """Describe one SpectrumIdentificationItem."""
    return {
        "id": item_id,
        "peptide": peptide,
        "charge": charge,
        "experimental_mz": experimental_mz,
        "calculated_mz": calculated_mz,
        "cv_params": cv_params or [],
        "user_params": user_params or [],
        "peptide_ref_attribute": peptide_ref_attribute,
    }


def _param_xml(tag: str, name: str, value: Optional[str]) -> str:
    value_xml = "" if value is None else f' value="{value}"'
    return f'<{tag} name="{name}"{value_xml}/>'


def _item_xml(item: Dict[str, Any]) -> str:
    attributes = [
        f'id="{item["id"]}"',
        'rank="1"',
        f'chargeState="{item["charge"]}"',
        f'experimentalMassToCharge="{item["experimental_mz"]}"',
        'passThreshold="true"',
    ]
    if item["calculated_mz"] is not None:
        attributes.append(f'calculatedMassToCharge="{item["calculated_mz"]}"')
    if item["peptide"] is not None:
        attributes.append(f'{item["peptide_ref_attribute"]}="{item["peptide"]}"')
    params = [_param_xml("cvParam", name, value) for name, value in item["cv_params"]]
    params += [
        _param_xml("userParam", name, value) for name, value in item["user_params"]
    ]
    return (
        f"<SpectrumIdentificationItem {' '.join(attributes)}>"
        + "".join(params)
        + "</SpectrumIdentificationItem>"
    )


def mzidentml_document(
    peptides: List[tuple], results: List[Dict[str, Any]]
) -> str:
    """Render a minimal mzIdentML 1.1 document.

    Args:
        peptides: `(id, sequence)` pairs in document order.
        results: `{"id": ..., "items": [...]}` mappings, items from `make_item`.

    Returns:
        str: The document text.
    """
    peptide_xml = "".join(
        f'<Peptide id="{peptide_id}"><PeptideSequence>{sequence}</PeptideSequence></Peptide>'
        for peptide_id, sequence in peptides
    )
    result_xml = "".join(
        f'<SpectrumIdentificationResult id="{result["id"]}" '
        f'spectrumID="index={index}" spectraData_ref="SD_1">'
        + "".join(_item_xml(item) for item in result["items"])
        + "</SpectrumIdentificationResult>"
        for index, result in enumerate(results)
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<MzIdentML xmlns="{MZIDENTML_NAMESPACE}" id="test" version="1.1.0">'
        '<cvList><cv id="PSI-MS" fullName="PSI-MS" uri="http://example.org/psi-ms.obo"/></cvList>'
        "<!-- search engine output -->"
        f"<SequenceCollection>{peptide_xml}</SequenceCollection>"
        "<AnalysisCollection/>"
        "<DataCollection><AnalysisData>"
        f'<SpectrumIdentificationList id="SIL_1">{result_xml}</SpectrumIdentificationList>'
        "</AnalysisData></DataCollection>"
        "</MzIdentML>\n"
    )


@pytest.fixture()
def write_mzid(tmp_path) -> Callable[..., Path]:
    """Return a function writing an mzIdentML document into `tmp_path`."""

    def _write(
        name: str, peptides: List[tuple], results: List[Dict[str, Any]]
    ) -> Path:
        path = tmp_path / name
        path.write_text(mzidentml_document(peptides, results), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def target_and_decoy(write_mzid):
    """One target and one decoy file sharing the spectrum `SIR_1`."""
    target = write_mzid(
        "target.mzid",
        [("pep_1", "PEPTIDE")],
        [
            {
                "id": "SIR_1",
                "items": [
                    make_item(
                        "SII_1_1", "pep_1", experimental_mz=501.0, calculated_mz=500.0
                    )
                ],
            }
        ],
    )
    decoy = write_mzid(
        "decoy.mzid",
        [("pep_1", "EDITPEP")],
        [
            {
                "id": "SIR_1",
                "items": [
                    make_item(
                        "SII_1_1", "pep_1", experimental_mz=501.0, calculated_mz=499.0
                    )
                ],
            }
        ],
    )
    return target, decoy
