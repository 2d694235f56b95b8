"""
Shared fixtures: a small four-sample community with fully resolved, partially
resolved and unassigned taxa.
"""
# ===================================== IMPORTS ====================================== #

import pandas as pd
import pytest

from workflow_shotgun.shotgun_data import assemble

# ===================================== TEST DATA ==================================== #

BSUB = 'Bacteria; Firmicutes; Bacilli; Bacillales; Bacillaceae; Bacillus; Bacillus subtilis'
LACTO = 'Bacteria; Firmicutes; Bacilli; Lactobacillales; Lactobacillaceae; Lactobacillus; NA'
ECOLI = ('Bacteria; Proteobacteria; Gammaproteobacteria; Enterobacterales; '
         'Enterobacteriaceae; Escherichia; Escherichia coli')
ACIDO = 'Bacteria; Acidobacteria; NA; NA; NA; NA; NA'
ARCH = 'Archaea; NA; NA; NA; NA; NA; NA'
UNASSIGNED = 'Unassigned'

TAXA = [BSUB, LACTO, ECOLI, ACIDO, ARCH, UNASSIGNED]

# Sample totals: S1 = 100, S2 = 50, S3 = 200, S4 = 25
COUNTS = {
    'S1': [30, 20, 25, 10, 5, 10],
    'S2': [10, 5, 20, 0, 10, 5],
    'S3': [40, 40, 60, 20, 20, 20],
    'S4': [5, 5, 5, 5, 0, 5],
}

METADATA = {
    'SampleID': ['S1', 'S2', 'S3', 'S4'],
    'Age': ['Young', 'Young', 'Old', 'Old'],
    'Plot': ['A', 'B', 'A', 'B'],
    'Depth': [5, 10, 5, 10],
}


def counts_text(counts=COUNTS) -> str:
    lines = ["Taxonomy\t" + "\t".join(counts)]
    for i, taxon in enumerate(TAXA):
        lines.append("\t".join([taxon] + [str(counts[s][i]) for s in counts]))
    return "\n".join(lines) + "\n"


def metadata_text() -> str:
    columns = list(METADATA)
    lines = ["\t".join(columns)]
    for i in range(len(METADATA['SampleID'])):
        lines.append("\t".join(str(METADATA[c][i]) for c in columns))
    return "\n".join(lines) + "\n"

# ===================================== FIXTURES ===================================== #

@pytest.fixture
def raw_counts():
    return pd.DataFrame({'Taxonomy': TAXA, **COUNTS})


@pytest.fixture
def raw_metadata():
    return pd.DataFrame(METADATA)


@pytest.fixture
def data(raw_counts, raw_metadata):
    return assemble(raw_counts, raw_metadata)


@pytest.fixture
def relative(data):
    return data.relative_abundance()


@pytest.fixture
def write_file(tmp_path):
    """Write `text` to `tmp_path / name` and return the path."""
    def _write(name, text):
        path = tmp_path / name
        path.write_text(text, encoding='utf-8')
        return path
    return _write
