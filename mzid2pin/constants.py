from pyteomics.parser import std_amino_acids

AMINO_ACIDS = tuple(sorted(std_amino_acids))
PTM_MARKERS = ('#', '*', '@')
FLANK = '-'

# mzIdentML element names, matched on local name so 1.0 and 1.1 documents both work
SEQUENCE_COLLECTION = 'SequenceCollection'
SPECTRUM_IDENTIFICATION_RESULT = 'SpectrumIdentificationResult'
SPECTRUM_IDENTIFICATION_ITEM = 'SpectrumIdentificationItem'
PEPTIDE = 'Peptide'
PEPTIDE_SEQUENCE = 'PeptideSequence'
CV_PARAM = 'cvParam'
USER_PARAM = 'userParam'
PEPTIDE_REF_ATTRIBUTES = ('peptide_ref', 'Peptide_ref')  # 1.1 spelling, 1.0 spelling

PERCOLATOR_IN_NAMESPACE = 'http://per-colator.com/percolator_in/11'
PERCOLATOR_IN_SCHEMA = 'https://github.com/percolator/percolator/raw/pin-1-1/src/xml/percolator_in.xsd'
XSI_NAMESPACE = 'http://www.w3.org/2001/XMLSchema-instance'
