"""Streaming access to mzIdentML documents.

Search results can hold millions of spectra, so documents are never loaded as a
whole. `MzIdentMLReader` hands out one complete subtree at a time (the
`SequenceCollection` or a single `SpectrumIdentificationResult`) and discards it
as soon as the next one is requested. Subtrees that are not requested are
discarded as soon as they have been parsed.

Elements are matched on their local name, which makes the reader independent of
the mzIdentML namespace version.
"""

from pathlib import Path
import logging
from typing import Callable, Iterable, Iterator, List, Optional, TypeVar, Union

from lxml import etree

from mzid2pin.constants import (
    CV_PARAM,
    PEPTIDE,
    PEPTIDE_REF_ATTRIBUTES,
    PEPTIDE_SEQUENCE,
    SEQUENCE_COLLECTION,
    SPECTRUM_IDENTIFICATION_ITEM,
    SPECTRUM_IDENTIFICATION_RESULT,
    USER_PARAM,
)
from mzid2pin.data_types import (
    MatchCandidate,
    Param,
    PeptideLookup,
    SpectrumResult,
    parse_double,
)
from mzid2pin.exceptions import (
    DuplicatePeptideError,
    MalformedInputError,
    MissingFieldError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def local_name(element: etree._Element) -> str:
    """Return the tag of an element without its namespace."""
    return etree.QName(element).localname


def _children(element: etree._Element, name: str) -> Iterator[etree._Element]:
    for child in element:
        # Comments and processing instructions have non-string tags
        if isinstance(child.tag, str) and local_name(child) == name:
            yield child


def _attribute(
    element: etree._Element,
    name: str,
    convert: Callable[[str], T] = str,
    required: bool = True,
) -> Optional[T]:
    value = element.get(name)
    if value is None:
        if required:
            raise MissingFieldError(
                f"{local_name(element)} {element.get('id')!r} has no {name} attribute"
            )
        return None
    try:
        return convert(value)
    except ValueError as exc:
        raise MalformedInputError(
            f"Attribute {name}={value!r} of {local_name(element)} "
            f"{element.get('id')!r} is not valid"
        ) from exc


def _charge_state(text: str) -> int:
    charge = int(text)
    if charge <= 0:
        raise ValueError(f"Charge state must be positive, got {charge}")
    return charge


def parse_param(element: etree._Element) -> Param:
    return Param(name=_attribute(element, "name"), value=element.get("value"))


def parse_match(element: etree._Element) -> MatchCandidate:
    """Read a `SpectrumIdentificationItem` subtree.

    Args:
        element: The `SpectrumIdentificationItem` element.

    Returns:
        MatchCandidate: The match with its cvParams and userParams in document order.
    """
    peptide_ref = None
    for attribute in PEPTIDE_REF_ATTRIBUTES:
        peptide_ref = element.get(attribute)
        if peptide_ref is not None:
            break

    return MatchCandidate(
        id=_attribute(element, "id"),
        peptide_ref=peptide_ref,
        rank=_attribute(element, "rank", int, required=False) or 0,
        charge_state=_attribute(element, "chargeState", _charge_state),
        experimental_mz=_attribute(element, "experimentalMassToCharge", parse_double),
        calculated_mz=_attribute(
            element, "calculatedMassToCharge", parse_double, required=False
        ),
        cv_params=[parse_param(child) for child in _children(element, CV_PARAM)],
        user_params=[parse_param(child) for child in _children(element, USER_PARAM)],
    )


def parse_result(element: etree._Element) -> SpectrumResult:
    """Read a `SpectrumIdentificationResult` subtree.

    Raises:
        MissingFieldError: If the result holds no `SpectrumIdentificationItem`.
    """
    return SpectrumResult(
        id=_attribute(element, "id"),
        spectrum_id=element.get("spectrumID"),
        matches=[
            parse_match(child)
            for child in _children(element, SPECTRUM_IDENTIFICATION_ITEM)
        ],
    )


def match_charge_states(element: etree._Element) -> List[int]:
    """Read only the charge states of the matches in a result subtree."""
    return [
        _attribute(child, "chargeState", _charge_state)
        for child in _children(element, SPECTRUM_IDENTIFICATION_ITEM)
    ]


def build_peptide_lookup(sequence_collection: etree._Element) -> PeptideLookup:
    """Map every peptide identifier of a file to its sequence.

    Peptide identifiers are only unique within one file, so the lookup must not
    be shared between files.

    Args:
        sequence_collection: The `SequenceCollection` element of the file.

    Returns:
        PeptideLookup: Peptide id to unmodified sequence.

    Raises:
        DuplicatePeptideError: If an identifier occurs twice.
        MalformedInputError: If a peptide has no sequence.
    """
    lookup: PeptideLookup = {}
    for peptide in _children(sequence_collection, PEPTIDE):
        peptide_id = _attribute(peptide, "id")
        if peptide_id in lookup:
            raise DuplicatePeptideError(f"Peptide id {peptide_id!r} is not unique")
        sequences = [
            (child.text or "").strip() for child in _children(peptide, PEPTIDE_SEQUENCE)
        ]
        if not sequences or not sequences[0]:
            raise MalformedInputError(f"Peptide {peptide_id!r} has no PeptideSequence")
        lookup[peptide_id] = sequences[0]
    return lookup


class MzIdentMLReader:
    """Iterates over the top-level subtrees of interest of an mzIdentML file.

    Only subtrees whose local name is listed in `tags` are reported; everything
    else (e.g. `AuditCollection`, `DBSequence` entries) is cleared as soon as it
    has been parsed. A returned element stays valid until the next call to
    `next_subtree`.

    Args:
        path: The mzIdentML file to read.
        tags: Local names of the subtrees to report.
    """

    def __init__(
        self,
        path: Union[Path, str],
        tags: Iterable[str] = (SEQUENCE_COLLECTION, SPECTRUM_IDENTIFICATION_RESULT),
    ) -> None:
        self.path = Path(path)
        self.tags = frozenset(tags)
        self._file = None
        self._events = None
        self._current: Optional[etree._Element] = None
        # Number of reported subtrees the parser is currently inside of
        self._open_subtrees = 0

    def open(self) -> "MzIdentMLReader":
        self._file = self.path.open("rb")
        self._events = etree.iterparse(
            self._file,
            events=("start", "end"),
            remove_comments=True,
            resolve_entities=False,
            no_network=True,
        )
        self._open_subtrees = 0
        return self

    def close(self) -> None:
        self._current = None
        self._events = None
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "MzIdentMLReader":
        return self.open()

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def next_subtree(self) -> Optional[etree._Element]:
        """Advance to the next reported subtree.

        Returns:
            Optional[etree._Element]: The subtree, or None at the end of the document.

        Raises:
            MalformedInputError: If the document is not well-formed.
        """
        if self._events is None:
            raise RuntimeError(f"{self.path} is not open")
        if self._current is not None:
            _discard(self._current)
            self._current = None
        try:
            for event, element in self._events:
                reported = local_name(element) in self.tags
                if event == "start":
                    if reported:
                        self._open_subtrees += 1
                    continue
                if reported:
                    self._open_subtrees -= 1
                    if self._open_subtrees == 0:
                        self._current = element
                        return element
                elif self._open_subtrees == 0:
                    _discard(element)
        except etree.XMLSyntaxError as exc:
            raise MalformedInputError(str(exc), source=self.path) from exc
        return None

    def skip_to(self, name: str) -> Optional[etree._Element]:
        """Advance to the next subtree with the given local name."""
        element = self.next_subtree()
        while element is not None and local_name(element) != name:
            element = self.next_subtree()
        return element

    def iter_results(self, first: etree._Element) -> Iterator[SpectrumResult]:
        """Parse `first` and every directly following result subtree.

        Args:
            first: The current `SpectrumIdentificationResult` element.

        Returns:
            Iterator[SpectrumResult]: The results, stopping at the first subtree of
                another kind or at the end of the document.
        """
        element = first
        while element is not None and local_name(element) == SPECTRUM_IDENTIFICATION_RESULT:
            yield parse_result(element)
            element = self.next_subtree()


def _discard(element: etree._Element) -> None:
    """Free a finished subtree together with its already finished siblings."""
    element.clear(keep_tail=True)
    parent = element.getparent()
    if parent is not None:
        while element.getprevious() is not None:
            del parent[0]
