from dataclasses import dataclass, field
import re
from typing import Dict, Iterator, List, Optional

import numpy as np
from numpy.typing import NDArray

from mzid2pin.exceptions import MalformedInputError, MissingFieldError, ScanMergeError

FeatureVector = NDArray[np.float64]
PeptideLookup = Dict[str, str]

# Lexical space of xs:double
_XS_DOUBLE = re.compile(
    r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|[+-]?INF|NaN"
)


def parse_double(text: str) -> float:
    """Parse an xs:double literal.

    Python-only spellings such as `nan`, `inf` or `1_000` are rejected.

    Raises:
        ValueError: If `text` is not an xs:double literal.
    """
    literal = text.strip()
    if not _XS_DOUBLE.fullmatch(literal):
        raise ValueError(f"{text!r} is not an xs:double value")
    return float(literal)


@dataclass(frozen=True)
class Param:
    """A named `cvParam` or `userParam` whose value may be absent."""

    name: str
    value: Optional[str] = None

    @property
    def has_value(self) -> bool:
        return self.value is not None


def _parse_param_value(param: Param) -> float:
    try:
        return parse_double(param.value)
    except ValueError as exc:
        raise MalformedInputError(
            f"Value {param.value!r} of parameter {param.name!r} is not a number"
        ) from exc


@dataclass
class MatchCandidate:
    """A candidate peptide assignment read from a `SpectrumIdentificationItem`."""

    id: str
    peptide_ref: Optional[str]
    rank: int
    charge_state: int
    experimental_mz: float
    calculated_mz: Optional[float] = None
    cv_params: List[Param] = field(default_factory=list)
    user_params: List[Param] = field(default_factory=list)

    def attribute_names(self) -> List[str]:
        """Names of the scored and free-form parameters that carry a value.

        Returns:
            List[str]: `cvParam` names in document order followed by `userParam` names.
        """
        return [
            param.name
            for param in self.cv_params + self.user_params
            if param.has_value
        ]

    def attribute_values(self) -> List[float]:
        """Numeric values of the parameters named by `attribute_names`.

        Returns:
            List[float]: The parsed values, in the same order as `attribute_names`.

        Raises:
            MalformedInputError: If a present value is not a number.
        """
        return [
            _parse_param_value(param)
            for param in self.cv_params + self.user_params
            if param.has_value
        ]


@dataclass
class SpectrumResult:
    """All candidate matches reported for one spectrum in one file."""

    id: str
    matches: List[MatchCandidate]
    spectrum_id: Optional[str] = None

    def __post_init__(self):
        if not self.matches:
            raise MissingFieldError(
                f"SpectrumIdentificationResult {self.id!r} has no SpectrumIdentificationItem"
            )
        reference_mz = self.matches[0].experimental_mz
        for match in self.matches[1:]:
            if match.experimental_mz != reference_mz:
                raise ScanMergeError(
                    f"SpectrumIdentificationItem {match.id!r} has experimentalMassToCharge "
                    f"{match.experimental_mz}, expected {reference_mz} as in the rest of "
                    f"result {self.id!r}"
                )

    @property
    def experimental_mz(self) -> float:
        return self.matches[0].experimental_mz


@dataclass(frozen=True)
class ChargeRange:
    """The closed range of precursor charges seen across all inputs."""

    minimum: int
    maximum: int

    def __post_init__(self):
        if self.minimum > self.maximum:
            raise ValueError(
                f"Invalid charge range: minimum {self.minimum} exceeds maximum {self.maximum}"
            )

    @property
    def charges(self) -> range:
        return range(self.minimum, self.maximum + 1)

    def __len__(self) -> int:
        return len(self.charges)

    def __iter__(self) -> Iterator[int]:
        return iter(self.charges)

    def union(self, other: "ChargeRange") -> "ChargeRange":
        return ChargeRange(
            minimum=min(self.minimum, other.minimum),
            maximum=max(self.maximum, other.maximum),
        )
