"""
Sample ID mapping between the study and the reference panel.
"""

from csv import QUOTE_NONE, reader
from pathlib import Path
from typing import Dict

from asemap.errors import ConfigurationError


def read_sample_mapping(mapping_file: str) -> Dict[str, str]:
    """
    Read a study-to-reference sample ID mapping.

    Each line holds two tab-separated fields: the reference sample ID
    followed by the study sample ID.

    Parameters
    ----------
    mapping_file : str
        Path to the mapping file.

    Returns
    -------
    dict
        Study sample ID -> reference sample ID.

    Raises
    ------
    ConfigurationError
        If the file is missing or a line does not have exactly 2 fields.
    """
    if not Path(mapping_file).is_file():
        raise ConfigurationError(f"Cannot find sample mapping file at: {mapping_file}")

    sample_map: Dict[str, str] = {}

    with open(mapping_file, encoding="utf-8", newline="") as f:
        for line in reader(f, delimiter="\t", quoting=QUOTE_NONE):
            if len(line) != 2:
                raise ConfigurationError(
                    f"Detected {len(line)} columns instead of 2 for this line: "
                    + "\t".join(line)
                )
            ref_sample, study_sample = line
            sample_map[study_sample] = ref_sample

    return sample_map
