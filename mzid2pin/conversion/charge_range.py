"""First pass over the inputs: the global precursor charge range.

Every feature vector carries one indicator per charge, so the range has to be
known before the first vector is built. This pass only reads result subtrees and
never touches the scan store.
"""

from functools import reduce
from pathlib import Path
import logging
from typing import List, Sequence, Union

from mzid2pin.constants import SPECTRUM_IDENTIFICATION_RESULT
from mzid2pin.data_types import ChargeRange
from mzid2pin.exceptions import ConversionError, MissingFieldError
from mzid2pin.io.mzid_reader import MzIdentMLReader, match_charge_states

logger = logging.getLogger(__name__)


def scan_charge_range(path: Union[Path, str]) -> ChargeRange:
    """Find the smallest and largest charge state of all matches in one file.

    Args:
        path: The mzIdentML file to scan.

    Returns:
        ChargeRange: The range of charges in the file.

    Raises:
        MissingFieldError: If the file contains no matches at all.
    """
    minimum, maximum = None, None
    try:
        with MzIdentMLReader(path, tags=(SPECTRUM_IDENTIFICATION_RESULT,)) as reader:
            element = reader.next_subtree()
            while element is not None:
                charges = match_charge_states(element)
                if not charges:
                    raise MissingFieldError(
                        f"SpectrumIdentificationResult {element.get('id')!r} has no "
                        "SpectrumIdentificationItem"
                    )
                low, high = min(charges), max(charges)
                minimum = low if minimum is None else min(minimum, low)
                maximum = high if maximum is None else max(maximum, high)
                element = reader.next_subtree()
    except ConversionError as exc:
        if exc.source is None:
            exc.source = path
        raise

    if minimum is None:
        raise MissingFieldError("No SpectrumIdentificationResult found", source=path)
    return ChargeRange(minimum=minimum, maximum=maximum)


def scan_charge_ranges(paths: Sequence[Union[Path, str]]) -> ChargeRange:
    """Reduce the charge ranges of several files to one global range.

    Args:
        paths: The files, in declared order.

    Returns:
        ChargeRange: The element-wise min/max over all files.
    """
    if not paths:
        raise ConversionError("At least one input file is required")
    ranges: List[ChargeRange] = []
    for path in paths:
        charge_range = scan_charge_range(path)
        logger.debug(
            f"Charges {charge_range.minimum}..{charge_range.maximum} in {path}"
        )
        ranges.append(charge_range)
    return reduce(ChargeRange.union, ranges)
